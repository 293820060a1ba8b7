"""Creative format discovery.

Asks creative agents for `list_creative_formats` and keeps one
AgentFormatsProfile per agent for the cache TTL. A failing agent yields a
profile with `error` set and no formats; it is cached like any other answer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from agent_registry.models.registry import Agent, AgentFormatsProfile, FormatInfo
from agent_registry.services.agent_client import AgentClient
from agent_registry.services.cache import DEFAULT_TTL_MINUTES, ExpiringCache
from agent_registry.services.urls import normalize_agent_url, now_iso

logger = logging.getLogger(__name__)

LIST_FORMATS_OPERATION = "list_creative_formats"


def normalize_format(entry: Any) -> Optional[FormatInfo]:
    if isinstance(entry, str):
        return FormatInfo(name=entry) if entry else None
    if not isinstance(entry, dict):
        return None
    aspect_ratio = entry.get("aspect_ratio") or entry.get("aspectRatio")
    return FormatInfo(
        name=str(entry.get("name") or entry.get("format") or entry.get("format_id") or "unknown"),
        dimensions=entry.get("dimensions") or entry.get("size"),
        aspect_ratio=str(aspect_ratio) if aspect_ratio is not None else None,
        type=entry.get("type") or entry.get("format_type"),
        description=entry.get("description"),
    )


def parse_formats_response(data: Any) -> List[FormatInfo]:
    """Accepts a bare list, {"formats": [...]} or a single format object."""
    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("formats"), list):
        entries = data["formats"]
    elif isinstance(data, dict) and data:
        entries = [data]
    else:
        entries = []
    return [f for f in (normalize_format(e) for e in entries) if f is not None]


class FormatsService:
    def __init__(
        self,
        client: AgentClient,
        cache_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        *,
        cache: Optional[ExpiringCache[AgentFormatsProfile]] = None,
    ) -> None:
        self.client = client
        self._cache: ExpiringCache[AgentFormatsProfile] = cache or ExpiringCache(cache_ttl_minutes)

    async def get_formats_for_agent(self, agent: Agent) -> AgentFormatsProfile:
        key = normalize_agent_url(agent.url)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        protocol = agent.protocol or "mcp"
        formats: List[FormatInfo] = []
        error = None
        try:
            result = await self.client.invoke(agent.url, protocol, LIST_FORMATS_OPERATION, {})
        except Exception as exc:
            error = f"Agent does not support {LIST_FORMATS_OPERATION}: {exc}"
        else:
            if result.success:
                formats = parse_formats_response(result.data)
            else:
                error = f"Agent returned error: {result.error or 'Unknown error'}"
        if error:
            logger.warning("Format listing for %s failed: %s", agent.url, error)

        profile = AgentFormatsProfile(
            agent_url=agent.url,
            protocol=protocol,
            formats=formats,
            last_fetched=now_iso(),
            error=error,
        )
        self._cache.set(key, profile)
        return profile

    async def enrich_agents_with_formats(self, agents: Sequence[Agent]) -> Dict[str, AgentFormatsProfile]:
        profiles = await asyncio.gather(*(self.get_formats_for_agent(a) for a in agents))
        return {p.agent_url: p for p in profiles}

    def get_formats_profile(self, agent_url: str) -> Optional[AgentFormatsProfile]:
        return self._cache.get(normalize_agent_url(agent_url))

    def get_all_formats_profiles(self) -> List[AgentFormatsProfile]:
        return self._cache.values()

    def clear_cache(self) -> None:
        self._cache.clear()
