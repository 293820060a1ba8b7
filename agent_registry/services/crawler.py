"""Property crawler.

One sweep asks every agent for its authorized properties in parallel and
rebuilds the PropertyIndex from the answers. Only one sweep runs at a time:
a call made while a sweep is in flight returns the previous result at once
instead of waiting or starting a second sweep.

Each agent's outcome is isolated. A failing agent is counted and recorded
but never aborts the sweep or undoes another agent's index update.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Union

from agent_registry.models.registry import (
    Agent,
    CrawlError,
    CrawlerStatus,
    CrawlResult,
    Property,
)
from agent_registry.services.agent_client import AgentClient
from agent_registry.services.agent_responses import UnrecognizedResponse, parse_properties_response
from agent_registry.services.property_index import PropertyIndex
from agent_registry.services.urls import hostname_of, now_iso

logger = logging.getLogger(__name__)

LIST_PROPERTIES_OPERATION = "list_authorized_properties"


@dataclass
class AgentSuccess:
    agent_url: str
    properties: List[Property] = field(default_factory=list)


@dataclass
class AgentFailure:
    agent_url: str
    error: str


AgentOutcome = Union[AgentSuccess, AgentFailure]


class CrawlerService:
    def __init__(
        self,
        index: PropertyIndex,
        client: AgentClient,
        *,
        max_concurrency: int = 0,
    ) -> None:
        self.index = index
        self.client = client
        self.max_concurrency = max(0, int(max_concurrency or 0))
        self._crawling = False
        self._last_crawl: Optional[str] = None
        self._last_result: Optional[CrawlResult] = None
        self._periodic_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

    @property
    def crawling(self) -> bool:
        return self._crawling

    @property
    def last_result(self) -> Optional[CrawlResult]:
        return self._last_result

    async def crawl_all_agents(self, agents: Sequence[Agent]) -> CrawlResult:
        if self._crawling:
            logger.info("Crawl already in progress, returning last result")
            return self._last_result or CrawlResult()

        self._crawling = True
        try:
            logger.info("Starting crawl of %d agents", len(agents))
            self.index.clear()
            semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
            outcomes = await asyncio.gather(*(self._crawl_agent(a, semaphore) for a in agents))
            result = self._summarize(outcomes)
            self._last_crawl = now_iso()
            self._last_result = result
        finally:
            self._crawling = False

        logger.info(
            "Crawl complete: %d properties from %d/%d agents",
            result.total_properties,
            result.successful_agents,
            len(agents),
        )
        if result.failed_agents:
            logger.info("%d agent(s) failed during crawl", result.failed_agents)
        return result

    async def _crawl_agent(self, agent: Agent, semaphore: Optional[asyncio.Semaphore]) -> AgentOutcome:
        if semaphore is None:
            outcome = await self._fetch_agent_properties(agent)
        else:
            async with semaphore:
                outcome = await self._fetch_agent_properties(agent)

        if isinstance(outcome, AgentSuccess):
            self.index.replace_agent_properties(outcome.agent_url, outcome.properties)
        else:
            logger.warning("Crawl of %s failed: %s", outcome.agent_url, outcome.error)
        return outcome

    async def _fetch_agent_properties(self, agent: Agent) -> AgentOutcome:
        try:
            response = await self.client.invoke(agent.url, agent.protocol or "mcp", LIST_PROPERTIES_OPERATION, {})
        except Exception as exc:
            # AgentClient implementations should not raise; contain the ones that do.
            return AgentFailure(agent.url, f"Agent does not support {LIST_PROPERTIES_OPERATION}: {exc}")

        if not response.success:
            return AgentFailure(agent.url, f"Agent returned error: {response.error or 'Unknown error'}")
        try:
            parsed = parse_properties_response(response.data, default_publisher_domain=hostname_of(agent.url))
        except UnrecognizedResponse as exc:
            return AgentFailure(agent.url, str(exc))
        return AgentSuccess(agent.url, parsed.properties)

    @staticmethod
    def _summarize(outcomes: Sequence[AgentOutcome]) -> CrawlResult:
        result = CrawlResult()
        domains = set()
        for outcome in outcomes:
            if isinstance(outcome, AgentSuccess):
                result.successful_agents += 1
                result.total_properties += len(outcome.properties)
                domains.update(p.publisher_domain for p in outcome.properties)
            else:
                result.failed_agents += 1
                result.errors.append(CrawlError(agent_url=outcome.agent_url, error=outcome.error))
        result.total_publisher_domains = len(domains)
        return result

    def start_periodic_crawl(self, agents: Sequence[Agent], interval_minutes: float = 60) -> asyncio.Task:
        """Crawl now and then every interval_minutes until stop_periodic_crawl().

        Must be called from a running event loop. Ticks that land on an
        in-flight sweep are absorbed by the single-flight guard.
        """
        self.stop_periodic_crawl()
        agents = list(agents)
        interval = float(interval_minutes) * 60.0
        self._periodic_task = asyncio.get_running_loop().create_task(self._periodic_loop(agents, interval))
        logger.info("Periodic crawl started (every %s minutes)", interval_minutes)
        return self._periodic_task

    async def _periodic_loop(self, agents: List[Agent], interval: float) -> None:
        while True:
            # Each tick runs as its own task so a slow sweep does not delay the next tick.
            task = asyncio.ensure_future(self._safe_crawl(agents))
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
            await asyncio.sleep(interval)

    async def _safe_crawl(self, agents: List[Agent]) -> None:
        try:
            await self.crawl_all_agents(agents)
        except Exception:
            logger.exception("Periodic crawl failed")

    def stop_periodic_crawl(self) -> None:
        """Cancel the schedule and any sweep it started that is still running."""
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None
            logger.info("Periodic crawl stopped")
        for task in list(self._tick_tasks):
            task.cancel()

    async def aclose(self) -> None:
        """Stop periodic crawling and wait until cancelled sweeps have unwound."""
        pending = [t for t in self._tick_tasks if not t.done()]
        if self._periodic_task is not None:
            pending.append(self._periodic_task)
        self.stop_periodic_crawl()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def get_status(self) -> CrawlerStatus:
        return CrawlerStatus(
            crawling=self._crawling,
            last_crawl=self._last_crawl,
            last_result=self._last_result,
            index_stats=self.index.get_stats(),
        )
