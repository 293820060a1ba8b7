import asyncio

import httpx

from agent_registry.services.cache import ExpiringCache
from agent_registry.services.validator import AgentValidator

from conftest import FakeClock, json_response


def _validate(transport, domain, agent_url, **kw):
    validator = AgentValidator(transport=transport, **kw)
    return validator, asyncio.run(validator.validate(domain, agent_url))


def test_trailing_slash_insensitive_match(routes, transport):
    routes["nytimes.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://sales.example.com"}]})
    _, result = _validate(transport, "nytimes.com", "https://sales.example.com/")
    assert result.authorized is True
    assert result.error is None
    assert result.source == "https://nytimes.com/.well-known/adagents.json"
    assert str(transport.requests[0].url) == "https://nytimes.com/.well-known/adagents.json"
    assert transport.requests[0].headers["accept"] == "application/json"


def test_domain_is_normalized(routes, transport):
    routes["nytimes.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://sales.example.com/"}]})
    _, result = _validate(transport, "HTTPS://NYTimes.com/", "https://sales.example.com")
    assert result.domain == "nytimes.com"
    assert result.authorized is True


def test_agent_path_comparison_is_case_sensitive(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://sales.example.com/MCP"}]})
    _, result = _validate(transport, "pub.com", "https://sales.example.com/mcp")
    assert result.authorized is False
    assert result.error is None


def test_agent_not_listed(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://other.example.com"}]})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is False
    assert result.error is None


def test_deprecated_string_entries_still_match(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": ["https://sales.example.com/"]})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is True


def test_http_error_status(routes, transport):
    routes["pub.com"] = lambda r: httpx.Response(404, text="nope", headers={"content-type": "text/plain"})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is False
    assert result.error == "HTTP 404"


def test_wrong_content_type(routes, transport):
    routes["pub.com"] = lambda r: httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is False
    assert "instead of JSON" in result.error


def test_invalid_json_body(routes, transport):
    routes["pub.com"] = lambda r: httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is False
    assert result.error == "File does not exist or is not valid JSON"


def test_missing_authorized_agents_array(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": "https://sales.example.com"})
    _, result = _validate(transport, "pub.com", "https://sales.example.com")
    assert result.authorized is False
    assert "missing authorized_agents array" in result.error


def test_timeout_becomes_error_result(routes, transport):
    def _timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    routes["slow.com"] = _timeout
    _, result = _validate(transport, "slow.com", "https://sales.example.com")
    assert result.authorized is False
    assert result.error == "Request timed out"


def test_connect_error_becomes_error_result(routes, transport):
    def _refused(request):
        raise httpx.ConnectError("connection refused", request=request)

    routes["down.com"] = _refused
    _, result = _validate(transport, "down.com", "https://sales.example.com")
    assert result.authorized is False
    assert result.error == "connection refused"


def test_results_are_cached_per_domain_and_agent(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://sales.example.com"}]})
    validator = AgentValidator(transport=transport)

    async def scenario():
        first = await validator.validate("pub.com", "https://sales.example.com")
        again = await validator.validate("https://pub.com", "https://sales.example.com/")
        other = await validator.validate("pub.com", "https://other.example.com")
        return first, again, other

    first, again, other = asyncio.run(scenario())
    assert again is first
    assert other.authorized is False
    assert len(transport.requests) == 2
    assert validator.get_cache_stats() == {"size": 2}

    validator.clear_cache()
    assert validator.get_cache_stats() == {"size": 0}


def test_expired_entry_is_refetched_and_reports_fresh_failure(routes, transport):
    routes["pub.com"] = lambda r: json_response({"authorized_agents": [{"url": "https://sales.example.com"}]})
    clock = FakeClock()
    validator = AgentValidator(transport=transport, cache=ExpiringCache(ttl_minutes=1, clock=clock))

    async def scenario():
        first = await validator.validate("pub.com", "https://sales.example.com")
        routes["pub.com"] = lambda r: httpx.Response(404, text="gone", headers={"content-type": "text/html"})
        clock.now += 30
        cached = await validator.validate("pub.com", "https://sales.example.com")
        clock.now += 31
        fresh = await validator.validate("pub.com", "https://sales.example.com")
        return first, cached, fresh

    first, cached, fresh = asyncio.run(scenario())
    assert first.authorized is True
    assert cached is first
    assert len(transport.requests) == 2
    assert fresh.authorized is False
    assert fresh.error == "HTTP 404"


def test_domain_that_normalizes_to_nothing_is_not_fetched(transport):
    _, result = _validate(transport, "https://", "https://sales.example.com")
    assert result.authorized is False
    assert result.error == "Domain and agent URL are required"
    assert transport.requests == []
