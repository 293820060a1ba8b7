"""Publisher adagents.json deployment tracking.

For every publisher domain that sales agents claim to represent we fetch the
publisher's manifest, check it against the current schema, and score how many
of the claiming agents the publisher actually lists.

Status rules:
- missing: the manifest URL answers with a 4xx status
- error: any error-severity issue (5xx, wrong content type, invalid JSON,
  structurally invalid authorized_agents or properties, network failure)
- schema_outdated: usable, but uses string agents or lacks a properties array
- deployed: everything else; warnings alone never block it

Agent URLs are compared after trimming a trailing slash; scheme and case are kept.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx

from agent_registry.models.registry import (
    Agent,
    DeploymentStats,
    PublisherIssue,
    PublisherStatus,
)
from agent_registry.services.cache import DEFAULT_TTL_MINUTES, ExpiringCache
from agent_registry.services.urls import hostname_of, manifest_url, normalize_agent_url, normalize_domain, now_iso
from agent_registry.settings import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DOCS_URL = "https://adcontextprotocol.org/docs/authorization"
SCHEMA_URL = "https://adcontextprotocol.org/schemas/v1/adagents.json"


@dataclass
class SchemaReport:
    issues: List[PublisherIssue] = field(default_factory=list)
    has_old_schema: bool = False

    @property
    def has_errors(self) -> bool:
        return any(i.severity == "error" for i in self.issues)

    def error(self, message: str, fix: str) -> None:
        self.issues.append(PublisherIssue(severity="error", message=message, fix=fix))

    def warning(self, message: str, fix: str) -> None:
        self.issues.append(PublisherIssue(severity="warning", message=message, fix=fix))


def validate_manifest_schema(content: Dict[str, Any]) -> SchemaReport:
    """Inspect a parsed manifest object and collect schema issues."""
    report = SchemaReport()

    if not content.get("$schema"):
        report.warning("Missing $schema field", f'Add "$schema": "{SCHEMA_URL}"')

    agents = content.get("authorized_agents")
    if not isinstance(agents, list):
        report.error(
            "Missing or invalid authorized_agents array",
            'Add "authorized_agents": [{"url": "https://agent.example.com", "authorized_for": "Description"}]',
        )
    else:
        if any(isinstance(a, str) for a in agents):
            report.has_old_schema = True
            report.warning(
                "Using deprecated string format for authorized_agents",
                'Update to object format: {"url": "https://....", "authorized_for": "Description"}',
            )
        for agent in agents:
            if isinstance(agent, str):
                continue
            if not isinstance(agent, dict) or not isinstance(agent.get("url"), str) or not agent["url"]:
                report.error(
                    "Agent missing required 'url' field",
                    'Each agent must have: {"url": "https://agent.example.com", "authorized_for": "Description"}',
                )
                break

    properties = content.get("properties")
    if properties is None:
        report.has_old_schema = True
        example = content.get("domain") or "example.com"
        report.warning(
            "Missing 'properties' array (new AdCP v2 protocol)",
            f'Add "properties": [{{"type": "domain", "identifier": "{example}", "tags": ["tag1"], '
            f'"publisher_domains": ["{example}"]}}]',
        )
    elif not isinstance(properties, list):
        report.error("'properties' must be an array", 'Change properties to an array: "properties": [...]')

    if not content.get("last_updated"):
        report.warning(
            "Missing 'last_updated' field",
            'Add "last_updated": "2025-01-22T12:00:00Z" with current ISO 8601 timestamp',
        )

    return report


def extract_authorized_agents(content: Dict[str, Any]) -> List[str]:
    agents = content.get("authorized_agents")
    if not isinstance(agents, list):
        return []
    out: List[str] = []
    for a in agents:
        url = a if isinstance(a, str) else (a.get("url") if isinstance(a, dict) else None)
        if isinstance(url, str) and url:
            norm = normalize_agent_url(url)
            if norm not in out:
                out.append(norm)
    return out


def _dedupe_agents(urls: Iterable[str]) -> List[str]:
    out: List[str] = []
    for u in urls:
        norm = normalize_agent_url(u)
        if norm and norm not in out:
            out.append(norm)
    return out


def coverage_percentage(expected: List[str], authorized: List[str]) -> int:
    if not expected:
        return 0
    listed = set(authorized)
    matched = sum(1 for e in expected if e in listed)
    return round(100 * matched / len(expected))


def apply_expected_agents(status: PublisherStatus, expected_agents: Iterable[str]) -> PublisherStatus:
    """Return a copy of status with coverage and the missing-agents warning computed for expected_agents."""
    expected = _dedupe_agents(expected_agents)
    issues = [i for i in status.issues if not i.message.startswith("Missing expected agent")]
    updated = status.model_copy(
        update={
            "expected_agents": expected,
            "coverage_percentage": coverage_percentage(expected, status.authorized_agents),
            "issues": issues,
        }
    )
    # Nothing was read from the publisher, so there is no agent list to compare.
    if status.raw_content is None:
        return updated
    missing = [e for e in expected if e not in status.authorized_agents]
    if missing:
        updated.issues.append(
            PublisherIssue(
                severity="warning",
                message=f"Missing expected agent(s) ({len(missing)}): {', '.join(missing)}",
                fix="Add these agents to the authorized_agents array if they should represent this publisher",
            )
        )
    return updated


class PublisherTracker:
    def __init__(
        self,
        cache_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        *,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[ExpiringCache[PublisherStatus]] = None,
    ) -> None:
        self.timeout = float(timeout)
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._transport = transport
        self._cache: ExpiringCache[PublisherStatus] = cache or ExpiringCache(cache_ttl_minutes)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=self._transport,
        )

    async def check_publisher(self, domain: str, expected_agents: Iterable[str]) -> PublisherStatus:
        """Fetch, validate and score one publisher's manifest.

        A cached status younger than the TTL is reused; its coverage is
        re-scored when the caller passes a different expected agent list.
        """
        domain = normalize_domain(domain)
        expected = _dedupe_agents(expected_agents)
        cached = self._cache.get(domain)
        if cached is not None:
            if cached.expected_agents == expected:
                return cached
            return apply_expected_agents(cached, expected)

        status = await self._fetch_status(domain)
        status = apply_expected_agents(status, expected)
        self._cache.set(domain, status)
        return status

    async def _fetch_status(self, domain: str) -> PublisherStatus:
        url = manifest_url(domain)
        status = PublisherStatus(
            domain=domain,
            deployment_status="missing",
            adagents_file_url=url,
            last_checked=now_iso(),
        )

        def _error(message: str, fix: str, deployment_status: str = "error") -> PublisherStatus:
            status.deployment_status = deployment_status
            status.issues.append(PublisherIssue(severity="error", message=message, fix=fix))
            return status

        try:
            async with self._client() as client:
                resp = await client.get(url)
        except httpx.TimeoutException:
            logger.debug("Timed out fetching %s", url)
            return _error("Failed to fetch: request timed out", "Ensure the file is served quickly over HTTPS")
        except httpx.HTTPError as exc:
            logger.debug("Failed to fetch %s: %r", url, exc)
            return _error(
                f"Failed to fetch: {str(exc) or type(exc).__name__}",
                "Ensure the file is accessible over HTTPS and CORS is enabled",
            )

        if not resp.is_success:
            return _error(
                f"File not found (HTTP {resp.status_code})",
                f"Deploy a valid adagents.json file to {url}. See: {DOCS_URL}",
                "missing" if 400 <= resp.status_code < 500 else "error",
            )

        content_type = resp.headers.get("content-type")
        if not content_type or "application/json" not in content_type.lower():
            return _error(
                f"Wrong content-type: {content_type}. Expected application/json",
                "Configure your web server to serve .json files with content-type: application/json",
            )

        try:
            content = resp.json()
        except ValueError as exc:
            return _error(f"Invalid JSON: {exc}", "Fix the JSON syntax of adagents.json")

        status.raw_content = content
        if not isinstance(content, dict):
            return _error(
                "adagents.json must be a JSON object",
                'Wrap the file in an object: {"authorized_agents": [...], "properties": [...]}',
            )

        report = validate_manifest_schema(content)
        status.issues.extend(report.issues)
        if report.has_errors:
            status.deployment_status = "error"
        elif report.has_old_schema:
            status.deployment_status = "schema_outdated"
        else:
            status.deployment_status = "deployed"

        status.authorized_agents = extract_authorized_agents(content)
        return status

    async def track_publishers(self, agents: Iterable[Agent]) -> Dict[str, PublisherStatus]:
        """Check every publisher domain that sales agents are hosted under, concurrently."""
        publisher_map: Dict[str, List[str]] = {}
        for agent in agents:
            if agent.type != "sales":
                continue
            domain = hostname_of(agent.url)
            if not domain:
                continue
            publisher_map.setdefault(domain.lower(), []).append(agent.url)

        domains = list(publisher_map)
        results = await asyncio.gather(*(self.check_publisher(d, publisher_map[d]) for d in domains))
        return dict(zip(domains, results))

    @staticmethod
    def expected_agents_for(domain: str, agents: Iterable[Agent]) -> List[str]:
        domain = normalize_domain(domain)
        return [a.url for a in agents if a.type == "sales" and (hostname_of(a.url) or "").lower() == domain]

    def get_publisher_status(self, domain: str) -> Optional[PublisherStatus]:
        return self._cache.get(normalize_domain(domain))

    def get_all_publishers(self) -> List[PublisherStatus]:
        return self._cache.values()

    def get_deployment_stats(self) -> DeploymentStats:
        stats = DeploymentStats()
        for status in self.get_all_publishers():
            stats.total += 1
            setattr(stats, status.deployment_status, getattr(stats, status.deployment_status) + 1)
        return stats

    def clear_cache(self) -> None:
        self._cache.clear()
