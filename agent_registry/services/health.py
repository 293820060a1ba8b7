"""Agent liveness and per-agent stats.

An agent is online when it answers a tool listing over its declared protocol.
Health results are cached per agent URL for the cache TTL. Stats come from
the crawl index for sales agents and from format discovery for creative agents.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from agent_registry.models.registry import Agent, AgentHealth, AgentStats
from agent_registry.services.agent_client import AgentClient
from agent_registry.services.cache import DEFAULT_TTL_MINUTES, ExpiringCache
from agent_registry.services.formats import FormatsService
from agent_registry.services.property_index import PropertyIndex
from agent_registry.services.urls import normalize_agent_url, now_iso

logger = logging.getLogger(__name__)


class HealthChecker:
    def __init__(
        self,
        client: AgentClient,
        index: PropertyIndex,
        formats: FormatsService,
        cache_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        *,
        cache: Optional[ExpiringCache[AgentHealth]] = None,
    ) -> None:
        self.client = client
        self.index = index
        self.formats = formats
        self._cache: ExpiringCache[AgentHealth] = cache or ExpiringCache(cache_ttl_minutes)

    async def check_health(self, agent: Agent) -> AgentHealth:
        key = normalize_agent_url(agent.url)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        health = await self._check(agent)
        self._cache.set(key, health)
        return health

    async def _check(self, agent: Agent) -> AgentHealth:
        protocol = agent.protocol or "mcp"
        started = time.monotonic()
        try:
            result = await self.client.list_tools(agent.url, protocol)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            error = None if result.success else (result.error or "Unknown error")

        if error is not None:
            logger.info("Agent %s is offline: %s", agent.url, error)
            return AgentHealth(online=False, checked_at=now_iso(), error=f"{protocol.upper()} connection failed: {error}")
        return AgentHealth(
            online=True,
            checked_at=now_iso(),
            response_time_ms=int((time.monotonic() - started) * 1000),
            tools_count=len(result.data or []),
        )

    async def get_stats(self, agent: Agent) -> AgentStats:
        if agent.type == "sales":
            auth = self.index.get_agent_authorizations(agent.url)
            return AgentStats(
                property_count=len(auth.properties),
                publisher_count=len(auth.publisher_domains),
                publishers=auth.publisher_domains,
            )
        if agent.type == "creative":
            profile = await self.formats.get_formats_for_agent(agent)
            return AgentStats(creative_formats=len(profile.formats) if profile.formats else None)
        return AgentStats()

    def clear_cache(self) -> None:
        self._cache.clear()
