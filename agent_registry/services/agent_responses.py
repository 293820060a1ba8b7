"""Parsing of list_authorized_properties responses.

Agents answer in one of three known shapes:

- property_list:     [ {property}, ... ]
- property_object:   {"properties": [ {property}, ... ], ...}
- publisher_domains: {"publisher_domains": ["a.com", ...], "primary_channels": ..., ...}

Anything else is rejected with UnrecognizedResponse. Inside a known shape,
individual property entries that fail validation (e.g. no identifiers) are
dropped and counted in ParsedProperties.skipped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import ValidationError

from agent_registry.models.registry import Property

logger = logging.getLogger(__name__)

ResponseVariant = Literal["property_list", "property_object", "publisher_domains"]


class UnrecognizedResponse(ValueError):
    """The agent's payload matches none of the known response shapes."""


@dataclass
class ParsedProperties:
    variant: ResponseVariant
    properties: List[Property] = field(default_factory=list)
    skipped: int = 0


def parse_properties_response(data: Any, *, default_publisher_domain: Optional[str] = None) -> ParsedProperties:
    if isinstance(data, list):
        return _parse_entries("property_list", data, default_publisher_domain)
    if isinstance(data, dict):
        if isinstance(data.get("properties"), list):
            return _parse_entries("property_object", data["properties"], default_publisher_domain)
        if isinstance(data.get("publisher_domains"), list):
            return _parse_publisher_domains(data)
    raise UnrecognizedResponse(f"Unrecognized list_authorized_properties response: {_describe(data)}")


def _describe(data: Any) -> str:
    if isinstance(data, dict):
        keys = ", ".join(sorted(str(k) for k in data)[:8])
        return f"object with keys [{keys}]"
    return type(data).__name__


def _parse_entries(variant: ResponseVariant, entries: List[Any], default_domain: Optional[str]) -> ParsedProperties:
    parsed = ParsedProperties(variant=variant)
    for entry in entries:
        prop = _to_property(entry, default_domain)
        if prop is None:
            parsed.skipped += 1
        else:
            parsed.properties.append(prop)
    if parsed.skipped:
        logger.warning("Dropped %d invalid property entries", parsed.skipped)
    return parsed


def _to_property(entry: Any, default_domain: Optional[str]) -> Optional[Property]:
    if not isinstance(entry, dict):
        return None
    raw: Dict[str, Any] = dict(entry)
    if "identifiers" not in raw and raw.get("identifier"):
        # Older flat form: {"identifier": "x.com", "type": "domain", "domain": "x.com"}
        raw["identifiers"] = [{"type": raw.get("type") or "domain", "value": raw["identifier"]}]
        raw.setdefault("publisher_domain", raw.get("domain"))

    identifiers = raw.get("identifiers")
    first = identifiers[0] if isinstance(identifiers, list) and identifiers and isinstance(identifiers[0], dict) else {}
    raw.setdefault("property_type", raw.get("type") or first.get("type"))
    raw.setdefault("name", first.get("value"))
    if not raw.get("publisher_domain"):
        raw["publisher_domain"] = default_domain
    try:
        return Property.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Skipping invalid property entry: %s", exc.errors()[:1])
        return None


def _parse_publisher_domains(data: Dict[str, Any]) -> ParsedProperties:
    parsed = ParsedProperties(variant="publisher_domains")
    channels = data.get("primary_channels")
    if isinstance(channels, str):
        tags: Optional[List[str]] = [channels]
    elif isinstance(channels, list):
        tags = [str(c) for c in channels]
    else:
        tags = None
    for domain in data["publisher_domains"]:
        if not isinstance(domain, str) or not domain.strip():
            parsed.skipped += 1
            continue
        d = domain.strip().lower()
        parsed.properties.append(
            Property(
                property_type="domain",
                name=d,
                identifiers=[{"type": "domain", "value": d}],
                tags=tags,
                publisher_domain=d,
            )
        )
    return parsed
