from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from agent_registry.services.agent_client import AgentClient, HttpAgentClient
from agent_registry.services.capabilities import CapabilityDiscovery
from agent_registry.services.catalog import AgentCatalog
from agent_registry.services.crawler import CrawlerService
from agent_registry.services.formats import FormatsService
from agent_registry.services.health import HealthChecker
from agent_registry.services.property_index import PropertyIndex
from agent_registry.services.publisher_tracker import PublisherTracker
from agent_registry.services.validator import AgentValidator
from agent_registry.settings import Settings


@dataclass
class Services:
    settings: Settings
    catalog: AgentCatalog
    index: PropertyIndex
    crawler: CrawlerService
    validator: AgentValidator
    publishers: PublisherTracker
    formats: FormatsService
    capabilities: CapabilityDiscovery
    health: HealthChecker


def build_services(settings: Settings, *, agent_client: Optional[AgentClient] = None, load_catalog: bool = True) -> Services:
    """Wire one independent set of services; nothing here is process-global."""
    catalog = AgentCatalog(settings.registry_dir)
    if load_catalog:
        catalog.load()
    index = PropertyIndex()
    client = agent_client or HttpAgentClient(timeout=settings.agent_timeout, user_agent=settings.user_agent)
    formats = FormatsService(client, settings.cache_ttl_minutes)
    return Services(
        settings=settings,
        catalog=catalog,
        index=index,
        crawler=CrawlerService(index, client, max_concurrency=settings.crawl_max_concurrency),
        validator=AgentValidator(
            settings.cache_ttl_minutes, timeout=settings.validator_timeout, user_agent=settings.user_agent
        ),
        publishers=PublisherTracker(
            settings.cache_ttl_minutes, timeout=settings.publisher_timeout, user_agent=settings.user_agent
        ),
        formats=formats,
        capabilities=CapabilityDiscovery(client, settings.cache_ttl_minutes, formats=formats),
        health=HealthChecker(client, index, formats, settings.cache_ttl_minutes),
    )
