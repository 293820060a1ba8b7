"""Outbound calls to remote agents.

AgentClient is the seam the crawler and discovery services depend on:
invoke() runs one named operation on an agent and list_tools() asks the agent
what it offers. Both always return an InvokeResult, never raising for remote
failures. HttpAgentClient speaks plain JSON-RPC 2.0 over HTTP POST, using
`tools/call` and `tools/list` for MCP agents and `message/send` for A2A
agents; an A2A agent's tools are the skills on its agent card at
`/.well-known/agent.json`. Session handshakes and streaming transports are
left to richer client libraries.
"""
from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from agent_registry.models.registry import InvokeResult
from agent_registry.settings import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

AGENT_CARD_PATH = "/.well-known/agent.json"


class AgentClient:
    async def invoke(
        self,
        agent_url: str,
        protocol: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> InvokeResult:
        raise NotImplementedError

    async def list_tools(self, agent_url: str, protocol: str) -> InvokeResult:
        """On success, data is a list of {name, description, input_schema} dicts."""
        raise NotImplementedError


class HttpAgentClient(AgentClient):
    def __init__(
        self,
        *,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = float(timeout)
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self._transport = transport
        self._ids = itertools.count(1)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=self._transport,
        )

    def _build_request(self, protocol: str, operation: str, params: Dict[str, Any]) -> Dict[str, Any]:
        request_id = next(self._ids)
        if protocol == "a2a":
            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "method": "message/send",
                "params": {
                    "message": {
                        "role": "user",
                        "messageId": f"registry-{request_id}",
                        "parts": [{"kind": "data", "data": {"skill": operation, "input": params}}],
                    }
                },
            }
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "tools/call",
            "params": {"name": operation, "arguments": params},
        }

    async def _fetch_json(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None):
        """Return (body, None) on success or (None, InvokeResult) describing the failure."""
        try:
            async with self._client() as client:
                if method == "GET":
                    resp = await client.get(url)
                else:
                    resp = await client.post(url, json=payload)
                resp.raise_for_status()
                return resp.json(), None
        except httpx.TimeoutException:
            return None, InvokeResult(success=False, error="Request timed out")
        except httpx.HTTPStatusError as exc:
            return None, InvokeResult(success=False, error=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %r", method, url, exc)
            return None, InvokeResult(success=False, error=str(exc) or type(exc).__name__)
        except ValueError:
            return None, InvokeResult(success=False, error="Agent response is not valid JSON")

    async def _rpc(self, agent_url: str, payload: Dict[str, Any]):
        body, failure = await self._fetch_json("POST", agent_url, payload)
        if failure is not None:
            return None, failure
        if not isinstance(body, dict):
            return None, InvokeResult(success=False, error="Agent response is not a JSON-RPC object")
        if body.get("error"):
            err = body["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            return None, InvokeResult(success=False, error=message or "Unknown error")
        return body.get("result"), None

    async def invoke(
        self,
        agent_url: str,
        protocol: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> InvokeResult:
        payload = self._build_request(protocol or "mcp", operation, params or {})
        result, failure = await self._rpc(agent_url, payload)
        if failure is not None:
            return failure
        if protocol == "a2a":
            return _a2a_result(result)
        return _mcp_result(result)

    async def list_tools(self, agent_url: str, protocol: str) -> InvokeResult:
        if protocol == "a2a":
            card, failure = await self._fetch_json("GET", agent_url.rstrip("/") + AGENT_CARD_PATH)
            if failure is not None:
                return failure
            if not isinstance(card, dict):
                return InvokeResult(success=False, error="Agent card is not a JSON object")
            skills = card.get("skills") or card.get("tools") or []
            return InvokeResult(success=True, data=_tool_list(skills, name_keys=("id", "name")))

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": "tools/list", "params": {}}
        result, failure = await self._rpc(agent_url, payload)
        if failure is not None:
            return failure
        if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
            return InvokeResult(success=False, error="MCP tools/list result has no tools array")
        return InvokeResult(success=True, data=_tool_list(result["tools"]))


def _tool_list(entries: Any, name_keys=("name",)) -> List[Dict[str, Any]]:
    tools = []
    for entry in entries or []:
        if isinstance(entry, str):
            tools.append({"name": entry, "description": "", "input_schema": {}})
            continue
        if not isinstance(entry, dict):
            continue
        name = next((entry[k] for k in name_keys if entry.get(k)), None)
        if not name:
            continue
        schema = entry.get("inputSchema") or entry.get("parameters")
        tools.append(
            {
                "name": str(name),
                "description": str(entry.get("description") or ""),
                "input_schema": schema if isinstance(schema, dict) else {},
            }
        )
    return tools


def _mcp_result(result: Any) -> InvokeResult:
    if not isinstance(result, dict):
        return InvokeResult(success=False, error="Missing result in MCP response")
    if result.get("isError"):
        return InvokeResult(success=False, error=_first_text(result.get("content")) or "Tool reported an error")
    if result.get("structuredContent") is not None:
        return InvokeResult(success=True, data=result["structuredContent"])
    text = _first_text(result.get("content"))
    if text is None:
        return InvokeResult(success=False, error="MCP result has no content")
    try:
        return InvokeResult(success=True, data=json.loads(text))
    except ValueError:
        return InvokeResult(success=False, error="MCP result content is not JSON")


def _a2a_result(result: Any) -> InvokeResult:
    if not isinstance(result, dict):
        return InvokeResult(success=False, error="Missing result in A2A response")
    state = (result.get("status") or {}).get("state") if isinstance(result.get("status"), dict) else None
    if state in ("failed", "rejected", "canceled"):
        return InvokeResult(success=False, error=f"A2A task {state}")
    containers = [a.get("parts") for a in result.get("artifacts") or [] if isinstance(a, dict)]
    containers.append(result.get("parts"))
    for parts in containers:
        for part in parts or []:
            if isinstance(part, dict) and part.get("kind") == "data" and "data" in part:
                return InvokeResult(success=True, data=part["data"])
    return InvokeResult(success=False, error="A2A response carries no data part")


def _first_text(content: Any) -> Optional[str]:
    for item in content or []:
        if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str):
            return item["text"]
    return None
