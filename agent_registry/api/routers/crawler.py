from fastapi import APIRouter, Depends

from agent_registry.api.deps import get_services
from agent_registry.services.container import Services

router = APIRouter(prefix="/api/crawler", tags=["crawler"])


@router.post("/run")
async def api_run_crawl(services: Services = Depends(get_services)):
    """Crawl all sales agents now. Returns the previous result if a crawl is already running."""
    result = await services.crawler.crawl_all_agents(services.catalog.list_agents("sales"))
    return result.model_dump()


@router.get("/status")
def api_crawler_status(services: Services = Depends(get_services)):
    return services.crawler.get_status().model_dump()
