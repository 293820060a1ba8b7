import asyncio

from agent_registry.models.registry import Agent, InvokeResult, Property
from agent_registry.services.cache import ExpiringCache
from agent_registry.services.formats import FormatsService
from agent_registry.services.health import HealthChecker
from agent_registry.services.property_index import PropertyIndex

from conftest import FakeAgentClient, FakeClock, property_dict, sales_agent

SALES = "https://sales.example.com/mcp"
STUDIO = "https://studio.example.com/mcp"


def _checker(client, index=None, **kw):
    return HealthChecker(client, index or PropertyIndex(), FormatsService(client), **kw)


def test_online_agent_reports_tool_count():
    client = FakeAgentClient({}, tools={SALES: [{"name": "get_products"}, {"name": "create_media_buy"}]})
    health = asyncio.run(_checker(client).check_health(sales_agent(SALES)))
    assert health.online is True
    assert health.tools_count == 2
    assert health.response_time_ms is not None and health.response_time_ms >= 0
    assert health.error is None


def test_unreachable_agent_is_offline_with_protocol_in_error():
    client = FakeAgentClient({}, tools={STUDIO: RuntimeError("handshake failed")})
    checker = _checker(client)
    a2a = Agent(name="A2A", url="https://a2a.example.com", type="signals", protocol="a2a")

    async def scenario():
        return await checker.check_health(sales_agent(STUDIO)), await checker.check_health(a2a)

    raised, refused = asyncio.run(scenario())
    assert raised.online is False
    assert raised.error == "MCP connection failed: handshake failed"
    assert refused.error == "A2A connection failed: connection refused"


def test_health_is_cached_until_ttl():
    client = FakeAgentClient({}, tools={SALES: []})
    clock = FakeClock()
    checker = _checker(client, cache=ExpiringCache(ttl_minutes=1, clock=clock))

    async def scenario():
        first = await checker.check_health(sales_agent(SALES))
        again = await checker.check_health(sales_agent(SALES))
        clock.now += 61
        await checker.check_health(sales_agent(SALES))
        return first, again

    first, again = asyncio.run(scenario())
    assert again is first
    assert client.operations == [(SALES, "tools/list")] * 2


def test_stats_by_agent_type():
    index = PropertyIndex()
    index.replace_agent_properties(SALES, [Property.model_validate(property_dict("a.com", publisher="pub.com"))])
    client = FakeAgentClient({STUDIO: InvokeResult(success=True, data=["banner", "video"])})
    checker = _checker(client, index)
    studio = Agent(name="Studio", url=STUDIO, type="creative")
    signals = Agent(name="Signals", url="https://signals.example.com", type="signals")

    async def scenario():
        return (
            await checker.get_stats(sales_agent(SALES + "/")),
            await checker.get_stats(studio),
            await checker.get_stats(signals),
        )

    sales, creative, other = asyncio.run(scenario())
    assert sales.property_count == 1
    assert sales.publishers == ["pub.com"]
    assert creative.creative_formats == 2
    assert other.property_count == 0 and other.creative_formats is None
