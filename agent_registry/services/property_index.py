"""In-memory bidirectional index of agent property claims.

Forward map: agent URL -> list of claimed properties (replaced wholesale per crawl).
Reverse map: "<type>:<value>" identifier key -> set of agent URLs claiming it.

The reverse map is derived data. It is rebuilt for an agent every time that
agent's claims are replaced, so it never points at an identifier the agent
no longer claims. Properties without identifiers (only constructible by
bypassing model validation) stay in the forward map and are not reverse-indexed.

Agent URLs are stored and looked up with one trailing slash trimmed.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Set

from agent_registry.models.registry import (
    AgentAuthorization,
    IndexStats,
    Property,
    PropertyIdentifier,
    PropertyMatch,
)
from agent_registry.services.urls import normalize_agent_url


def _keys_for(properties: Iterable[Property]) -> Set[str]:
    keys: Set[str] = set()
    for prop in properties:
        for ident in prop.identifiers or []:
            keys.add(ident.key())
    return keys


class PropertyIndex:
    def __init__(self) -> None:
        self._agent_properties: Dict[str, List[Property]] = {}
        self._identifier_agents: Dict[str, Set[str]] = {}

    def replace_agent_properties(self, agent_url: str, properties: Iterable[Property]) -> None:
        """Install a new claim set for an agent, discarding the previous one."""
        agent_url = normalize_agent_url(agent_url)
        new_props = list(properties)
        old_keys = _keys_for(self._agent_properties.get(agent_url, []))
        new_keys = _keys_for(new_props)

        self._agent_properties[agent_url] = new_props

        for key in old_keys - new_keys:
            agents = self._identifier_agents.get(key)
            if agents is None:
                continue
            agents.discard(agent_url)
            if not agents:
                del self._identifier_agents[key]
        for key in new_keys:
            self._identifier_agents.setdefault(key, set()).add(agent_url)

    def find_agents_for_property(self, identifier_type: str, identifier_value: str) -> List[PropertyMatch]:
        key = PropertyIdentifier.model_construct(type=identifier_type, value=identifier_value).key()
        matches: List[PropertyMatch] = []
        for agent_url in sorted(self._identifier_agents.get(key, ())):
            for prop in self._agent_properties.get(agent_url, []):
                if any(i.type == identifier_type and i.value == identifier_value for i in prop.identifiers):
                    matches.append(
                        PropertyMatch(property=prop, agent_url=agent_url, publisher_domain=prop.publisher_domain)
                    )
        return matches

    def get_agent_authorizations(self, agent_url: str) -> AgentAuthorization:
        agent_url = normalize_agent_url(agent_url)
        props = list(self._agent_properties.get(agent_url, []))
        domains: List[str] = []
        for prop in props:
            if prop.publisher_domain and prop.publisher_domain not in domains:
                domains.append(prop.publisher_domain)
        return AgentAuthorization(agent_url=agent_url, properties=props, publisher_domains=domains)

    def clear(self) -> None:
        self._agent_properties.clear()
        self._identifier_agents.clear()

    def get_stats(self) -> IndexStats:
        return IndexStats(
            total_agents=len(self._agent_properties),
            total_properties=sum(len(p) for p in self._agent_properties.values()),
            total_identifiers=len(self._identifier_agents),
        )
