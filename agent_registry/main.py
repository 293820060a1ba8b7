import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from agent_registry.services.container import Services, build_services
from agent_registry.settings import get_settings

# Routers
from agent_registry.api.routers.agents import router as agents_router
from agent_registry.api.routers.crawler import router as crawler_router
from agent_registry.api.routers.lookup import router as lookup_router
from agent_registry.api.routers.publishers import router as publishers_router

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    services = services or build_services(get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the periodic property crawl for sales agents while the app is up."""
        sales_agents = services.catalog.list_agents("sales")
        if services.settings.crawl_on_startup and sales_agents:
            logger.info("Starting property crawler for %d sales agents", len(sales_agents))
            services.crawler.start_periodic_crawl(sales_agents, services.settings.crawl_interval_minutes)
        try:
            yield
        finally:
            await services.crawler.aclose()

    app = FastAPI(title="AdCP Agent Registry", version="0.1", lifespan=lifespan)
    app.state.services = services

    app.include_router(agents_router)
    app.include_router(lookup_router)
    app.include_router(crawler_router)
    app.include_router(publishers_router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    return app


app = create_app()
