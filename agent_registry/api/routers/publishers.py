from fastapi import APIRouter, Depends

from agent_registry.api.deps import get_services
from agent_registry.models.registry import PublisherStatus
from agent_registry.services.container import Services

router = APIRouter(prefix="/api/publishers", tags=["publishers"])


async def _check(domain: str, services: Services) -> PublisherStatus:
    expected = services.publishers.expected_agents_for(domain, services.catalog.list_agents("sales"))
    return await services.publishers.check_publisher(domain, expected)


@router.get("")
async def api_list_publishers(services: Services = Depends(get_services)):
    statuses = await services.publishers.track_publishers(services.catalog.list_agents("sales"))
    return {
        "total": len(statuses),
        "publishers": [s.model_dump(exclude={"raw_content"}) for s in statuses.values()],
        "stats": services.publishers.get_deployment_stats().model_dump(),
    }


@router.get("/{domain}")
async def api_get_publisher(domain: str, services: Services = Depends(get_services)):
    status = await _check(domain, services)
    return status.model_dump()


@router.get("/{domain}/validation")
async def api_get_publisher_validation(domain: str, services: Services = Depends(get_services)):
    status = await _check(domain, services)
    return {
        "domain": status.domain,
        "deployment_status": status.deployment_status,
        "issues": [i.model_dump() for i in status.issues],
        "coverage_percentage": status.coverage_percentage,
        "recommended_actions": [
            {"issue": i.message, "fix": i.fix, "severity": i.severity} for i in status.issues
        ],
    }
