"""Capability discovery.

Lists an agent's tools and derives role-specific capability flags from the
tool names. Profiles, including ones carrying a discovery_error, are cached
per agent URL for the cache TTL.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Set

from agent_registry.models.registry import (
    Agent,
    AgentCapabilityProfile,
    CreativeCapabilities,
    SignalsCapabilities,
    StandardOperations,
    ToolCapability,
)
from agent_registry.services.agent_client import AgentClient
from agent_registry.services.cache import DEFAULT_TTL_MINUTES, ExpiringCache
from agent_registry.services.formats import LIST_FORMATS_OPERATION, FormatsService
from agent_registry.services.urls import normalize_agent_url, now_iso

logger = logging.getLogger(__name__)


def _names(tools: Iterable[ToolCapability]) -> Set[str]:
    return {t.name.lower() for t in tools}


def analyze_sales_capabilities(tools: Sequence[ToolCapability]) -> StandardOperations:
    names = _names(tools)
    # get_products covers search, availability and pricing; create_media_buy covers reservation.
    return StandardOperations(
        can_search_inventory="get_products" in names,
        can_get_availability="get_products" in names,
        can_reserve_inventory="create_media_buy" in names,
        can_get_pricing="get_products" in names,
        can_create_order="create_media_buy" in names,
        can_list_properties="list_authorized_properties" in names,
    )


def analyze_creative_capabilities(tools: Sequence[ToolCapability], formats: Optional[List[str]] = None) -> CreativeCapabilities:
    names = _names(tools)
    return CreativeCapabilities(
        formats_supported=list(formats or []),
        can_generate=bool(names & {"build_creative", "generate_creative"}),
        can_validate="validate_creative" in names,
        can_preview=bool(names & {"preview_creative", "get_preview"}),
    )


def analyze_signals_capabilities(tools: Sequence[ToolCapability]) -> SignalsCapabilities:
    names = _names(tools)
    return SignalsCapabilities(
        can_match=bool(names & {"match_audience", "audience_match"}),
        can_activate=bool(names & {"activate_signal", "activate_audience"}),
        can_get_signals=bool(names & {"get_signals", "list_signals"}),
    )


class CapabilityDiscovery:
    def __init__(
        self,
        client: AgentClient,
        cache_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        *,
        formats: Optional[FormatsService] = None,
        cache: Optional[ExpiringCache[AgentCapabilityProfile]] = None,
    ) -> None:
        self.client = client
        self.formats = formats
        self._cache: ExpiringCache[AgentCapabilityProfile] = cache or ExpiringCache(cache_ttl_minutes)

    async def discover_capabilities(self, agent: Agent) -> AgentCapabilityProfile:
        key = normalize_agent_url(agent.url)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        profile = await self._discover(agent)
        self._cache.set(key, profile)
        return profile

    async def _discover(self, agent: Agent) -> AgentCapabilityProfile:
        protocol = agent.protocol or "mcp"
        discovered_at = now_iso()
        profile = AgentCapabilityProfile(agent_url=agent.url, protocol=protocol, last_discovered=discovered_at)
        try:
            result = await self.client.list_tools(agent.url, protocol)
        except Exception as exc:
            profile.discovery_error = str(exc) or type(exc).__name__
            logger.warning("Capability discovery for %s raised: %s", agent.url, profile.discovery_error)
            return profile
        if not result.success:
            profile.discovery_error = result.error or "Tool discovery failed"
            logger.warning("Capability discovery for %s failed: %s", agent.url, profile.discovery_error)
            return profile

        tools = [ToolCapability(verified_at=discovered_at, **t) for t in result.data or []]
        profile.discovered_tools = tools
        logger.info("%s discovery for %s: found %d tools", protocol.upper(), agent.url, len(tools))

        if agent.type == "sales":
            profile.standard_operations = analyze_sales_capabilities(tools)
        elif agent.type == "creative":
            profile.creative_capabilities = analyze_creative_capabilities(tools, await self._format_names(agent, tools))
        elif agent.type == "signals":
            profile.signals_capabilities = analyze_signals_capabilities(tools)
        return profile

    async def _format_names(self, agent: Agent, tools: Sequence[ToolCapability]) -> List[str]:
        if self.formats is None or LIST_FORMATS_OPERATION not in _names(tools):
            return []
        formats = await self.formats.get_formats_for_agent(agent)
        return [f.name for f in formats.formats]

    async def discover_all(self, agents: Sequence[Agent]) -> List[AgentCapabilityProfile]:
        return list(await asyncio.gather(*(self.discover_capabilities(a) for a in agents)))

    def get_capabilities(self, agent_url: str) -> Optional[AgentCapabilityProfile]:
        return self._cache.get(normalize_agent_url(agent_url))

    def clear_cache(self) -> None:
        self._cache.clear()
