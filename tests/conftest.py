from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from agent_registry.models.registry import Agent, InvokeResult
from agent_registry.services.agent_client import AgentClient


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that serves fixed responses per host and counts requests."""

    def __init__(self, routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            return httpx.Response(404, text="not found", headers={"content-type": "text/plain"})
        return handler(request)


class FakeAgentClient(AgentClient):
    """Scripted agent answers.

    `answers` maps agent_url, or (agent_url, operation), to an InvokeResult or an
    exception to raise. `tools` maps agent_url to a list of tool dicts or an
    exception. Unknown agents fail with "connection refused".
    """

    def __init__(self, answers: Dict[Any, Any], tools: Optional[Dict[str, Any]] = None) -> None:
        self.answers = answers
        self.tools = tools or {}
        self.calls: List[str] = []
        self.operations: List[Tuple[str, str]] = []

    async def invoke(self, agent_url: str, protocol: str, operation: str, params: Optional[Dict[str, Any]] = None) -> InvokeResult:
        self.calls.append(agent_url)
        self.operations.append((agent_url, operation))
        answer = self.answers.get((agent_url, operation), self.answers.get(agent_url))
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            return InvokeResult(success=False, error="connection refused")
        return answer

    async def list_tools(self, agent_url: str, protocol: str) -> InvokeResult:
        self.operations.append((agent_url, "tools/list"))
        tools = self.tools.get(agent_url)
        if isinstance(tools, Exception):
            raise tools
        if tools is None:
            return InvokeResult(success=False, error="connection refused")
        return InvokeResult(success=True, data=tools)


class FakeClock:
    """Settable monotonic clock for ExpiringCache."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def sales_agent(url: str, name: str = "agent") -> Agent:
    return Agent(name=name, url=url, type="sales", protocol="mcp")


def property_dict(value: str, *, id_type: str = "domain", publisher: Optional[str] = None) -> Dict[str, Any]:
    return {
        "property_type": "website",
        "name": value,
        "identifiers": [{"type": id_type, "value": value}],
        "publisher_domain": publisher or value,
    }


@pytest.fixture
def routes() -> Dict[str, Callable[[httpx.Request], httpx.Response]]:
    return {}


@pytest.fixture
def transport(routes) -> RecordingTransport:
    return RecordingTransport(routes)
