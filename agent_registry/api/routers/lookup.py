from fastapi import APIRouter, Depends, Query

from agent_registry.api.deps import get_services
from agent_registry.models.registry import ValidateRequest
from agent_registry.services.container import Services

router = APIRouter(prefix="/api", tags=["lookup"])


@router.post("/validate")
async def api_validate(req: ValidateRequest, services: Services = Depends(get_services)):
    """Check whether agent_url is listed in domain's adagents.json. Failures come back in `error`."""
    result = await services.validator.validate(req.domain, req.agent_url)
    return result.model_dump(exclude_none=True)


@router.get("/lookup/property")
def api_lookup_property(
    type: str = Query(..., min_length=1, description="Identifier type, e.g. domain"),
    value: str = Query(..., min_length=1, description="Identifier value, e.g. nytimes.com"),
    services: Services = Depends(get_services),
):
    matches = services.index.find_agents_for_property(type, value)
    return {
        "type": type,
        "value": value,
        "agents": [m.model_dump(exclude_none=True) for m in matches],
        "count": len(matches),
    }
