import asyncio
import json

import httpx

from agent_registry.services.agent_client import HttpAgentClient


def _client(handler):
    return HttpAgentClient(transport=httpx.MockTransport(handler))


def _invoke(handler, protocol="mcp"):
    return asyncio.run(_client(handler).invoke("https://agent.example.com/mcp", protocol, "list_authorized_properties", {}))


def test_mcp_structured_content():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"structuredContent": {"properties": []}}})

    result = _invoke(handler)
    assert result.success is True
    assert result.data == {"properties": []}
    assert seen["body"]["method"] == "tools/call"
    assert seen["body"]["params"] == {"name": "list_authorized_properties", "arguments": {}}


def test_mcp_text_content_is_parsed_as_json():
    def handler(request):
        content = [{"type": "text", "text": json.dumps({"publisher_domains": ["a.com"]})}]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"content": content}})

    result = _invoke(handler)
    assert result.success is True
    assert result.data == {"publisher_domains": ["a.com"]}


def test_mcp_tool_error():
    def handler(request):
        result = {"isError": True, "content": [{"type": "text", "text": "Unknown tool"}]}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})

    result = _invoke(handler)
    assert result.success is False
    assert result.error == "Unknown tool"


def test_jsonrpc_error_object():
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}})

    result = _invoke(handler)
    assert result.success is False
    assert result.error == "Method not found"


def test_http_status_failure():
    result = _invoke(lambda request: httpx.Response(502, text="bad gateway"))
    assert result.success is False
    assert result.error == "HTTP 502"


def test_timeout_failure():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    result = _invoke(handler)
    assert result.success is False
    assert result.error == "Request timed out"


def test_a2a_data_part():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        result = {"status": {"state": "completed"}, "artifacts": [{"parts": [{"kind": "data", "data": [{"name": "x"}]}]}]}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})

    result = _invoke(handler, protocol="a2a")
    assert result.success is True
    assert result.data == [{"name": "x"}]
    assert seen["body"]["method"] == "message/send"
    part = seen["body"]["params"]["message"]["parts"][0]
    assert part["data"]["skill"] == "list_authorized_properties"


def test_a2a_failed_task():
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"status": {"state": "failed"}}})

    result = _invoke(handler, protocol="a2a")
    assert result.success is False
    assert result.error == "A2A task failed"


def test_mcp_list_tools():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        tools = [
            {"name": "get_products", "description": "Search inventory", "inputSchema": {"type": "object"}},
            {"name": "create_media_buy"},
            {"description": "nameless tool is skipped"},
        ]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"tools": tools}})

    result = asyncio.run(_client(handler).list_tools("https://agent.example.com/mcp", "mcp"))
    assert seen["body"]["method"] == "tools/list"
    assert result.success is True
    assert [t["name"] for t in result.data] == ["get_products", "create_media_buy"]
    assert result.data[0]["input_schema"] == {"type": "object"}
    assert result.data[1]["description"] == ""


def test_a2a_list_tools_reads_agent_card_skills():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        card = {"name": "Sales", "skills": [{"id": "get_products", "name": "Get products", "description": "d"}]}
        return httpx.Response(200, json=card)

    result = asyncio.run(_client(handler).list_tools("https://agent.example.com/a2a/", "a2a"))
    assert seen["method"] == "GET"
    assert seen["url"] == "https://agent.example.com/a2a/.well-known/agent.json"
    assert result.success is True
    assert result.data == [{"name": "get_products", "description": "d", "input_schema": {}}]


def test_list_tools_failure_is_returned():
    result = asyncio.run(_client(lambda r: httpx.Response(404, text="nope")).list_tools("https://agent.example.com", "a2a"))
    assert result.success is False
    assert result.error == "HTTP 404"
