import asyncio
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from agent_registry.api.deps import get_services
from agent_registry.models.registry import Agent, AgentCapabilityProfile
from agent_registry.services.catalog import AGENT_TYPES
from agent_registry.services.container import Services

router = APIRouter(prefix="/api", tags=["agents"])


def _dump(agent: Agent) -> Dict[str, Any]:
    return agent.model_dump(by_alias=True, exclude_none=True)


def _require_agent(services: Services, agent_type: str, name: str) -> Agent:
    agent = services.catalog.get_agent(f"{agent_type}/{name}")
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


def _capability_summary(profile: AgentCapabilityProfile) -> Dict[str, Any]:
    summary = profile.model_dump(
        include={"standard_operations", "creative_capabilities", "signals_capabilities", "discovery_error"},
        exclude_none=True,
    )
    summary["tools_count"] = len(profile.discovered_tools)
    return summary


async def _enrich(services: Services, agent: Agent, *, stats: bool, health: bool, capabilities: bool) -> Dict[str, Any]:
    out = _dump(agent)
    if stats or health:
        out["stats"] = (await services.health.get_stats(agent)).model_dump(exclude_none=True)
    if health:
        out["health"] = (await services.health.check_health(agent)).model_dump(exclude_none=True)
    if capabilities:
        out["capabilities"] = _capability_summary(await services.capabilities.discover_capabilities(agent))
    return out


@router.get("/agents")
async def api_list_agents(
    type: Optional[str] = Query(None, description="creative | signals | sales"),
    stats: bool = Query(False, description="Include property stats from the crawl index"),
    health: bool = Query(False, description="Check each agent and include health and stats"),
    capabilities: bool = Query(False, description="Include a summary of discovered capabilities"),
    services: Services = Depends(get_services),
):
    if type is not None and type not in AGENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown agent type: {type}")
    agents = services.catalog.list_agents(type)
    if not (stats or health or capabilities):
        return [_dump(a) for a in agents]
    return await asyncio.gather(
        *(_enrich(services, a, stats=stats, health=health, capabilities=capabilities) for a in agents)
    )


@router.get("/agents/{agent_type}/{name}")
async def api_get_agent(
    agent_type: str,
    name: str,
    health: bool = Query(False, description="Check the agent and include its health"),
    services: Services = Depends(get_services),
):
    agent = _require_agent(services, agent_type, name)
    return await _enrich(services, agent, stats=True, health=health, capabilities=False)


@router.get("/agents/{agent_type}/{name}/properties")
def api_get_agent_properties(agent_type: str, name: str, services: Services = Depends(get_services)):
    agent = _require_agent(services, agent_type, name)
    auth = services.index.get_agent_authorizations(agent.url)
    return {
        "agent_id": f"{agent_type}/{name}",
        "agent_url": auth.agent_url,
        "properties": [p.model_dump(exclude_none=True) for p in auth.properties],
        "publisher_domains": auth.publisher_domains,
        "count": len(auth.properties),
    }


@router.get("/agents/{agent_type}/{name}/capabilities")
async def api_get_agent_capabilities(agent_type: str, name: str, services: Services = Depends(get_services)):
    agent = _require_agent(services, agent_type, name)
    profile = await services.capabilities.discover_capabilities(agent)
    return profile.model_dump(exclude_none=True)


@router.get("/agents/{agent_type}/{name}/formats")
async def api_get_agent_formats(agent_type: str, name: str, services: Services = Depends(get_services)):
    agent = _require_agent(services, agent_type, name)
    if agent.type != "creative":
        raise HTTPException(status_code=400, detail="Only creative agents list formats")
    profile = await services.formats.get_formats_for_agent(agent)
    return profile.model_dump(exclude_none=True)


@router.post("/capabilities/discover-all")
async def api_discover_all_capabilities(services: Services = Depends(get_services)):
    profiles = await services.capabilities.discover_all(services.catalog.list_agents())
    return {"total": len(profiles), "profiles": [p.model_dump(exclude_none=True) for p in profiles]}


@router.get("/stats")
def api_stats(services: Services = Depends(get_services)):
    agents = services.catalog.list_agents()
    return {
        "total": len(agents),
        "by_type": {t: sum(1 for a in agents if a.type == t) for t in AGENT_TYPES},
        "cache": services.validator.get_cache_stats(),
        "index": services.index.get_stats().model_dump(),
    }
