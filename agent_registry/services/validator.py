"""Checks whether a publisher's adagents.json lists a given agent.

validate() never raises: transport, HTTP and format problems all come back as
a ValidationResult with authorized=False and an explanatory error.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from agent_registry.models.registry import ValidationResult
from agent_registry.services.cache import DEFAULT_TTL_MINUTES, ExpiringCache
from agent_registry.services.urls import manifest_url, normalize_agent_url, normalize_domain, now_iso
from agent_registry.settings import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class AgentValidator:
    def __init__(
        self,
        cache_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        *,
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[ExpiringCache[ValidationResult]] = None,
    ) -> None:
        self.timeout = float(timeout)
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._transport = transport
        self._cache: ExpiringCache[ValidationResult] = cache or ExpiringCache(cache_ttl_minutes)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=self._transport,
        )

    async def validate(self, domain: str, agent_url: str) -> ValidationResult:
        norm_domain = normalize_domain(domain)
        norm_agent = normalize_agent_url(agent_url)
        if not norm_domain or not norm_agent:
            return ValidationResult(
                authorized=False,
                domain=norm_domain,
                agent_url=norm_agent,
                checked_at=now_iso(),
                error="Domain and agent URL are required",
            )
        cache_key = f"{norm_domain}:{norm_agent}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        result = await self._fetch_and_validate(norm_domain, norm_agent)
        self._cache.set(cache_key, result)
        return result

    async def _fetch_and_validate(self, domain: str, agent_url: str) -> ValidationResult:
        url = manifest_url(domain)

        def _fail(error: str) -> ValidationResult:
            return ValidationResult(
                authorized=False, domain=domain, agent_url=agent_url, checked_at=now_iso(), error=error
            )

        try:
            async with self._client() as client:
                resp = await client.get(url)
        except httpx.TimeoutException:
            logger.debug("Timed out fetching %s", url)
            return _fail("Request timed out")
        except httpx.HTTPError as exc:
            logger.debug("Failed to fetch %s: %r", url, exc)
            return _fail(str(exc) or type(exc).__name__)

        if resp.status_code < 200 or resp.status_code >= 300:
            return _fail(f"HTTP {resp.status_code}")

        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            return _fail(f"File does not exist or returns {content_type or 'no content type'} instead of JSON")

        try:
            data = resp.json()
        except ValueError:
            return _fail("File does not exist or is not valid JSON")

        agents = data.get("authorized_agents") if isinstance(data, dict) else None
        if not isinstance(agents, list):
            return _fail("Invalid adagents.json format: missing authorized_agents array")

        authorized = any(_entry_url(entry) == agent_url for entry in agents)
        return ValidationResult(
            authorized=authorized,
            domain=domain,
            agent_url=agent_url,
            checked_at=now_iso(),
            source=url,
        )

    def get_cache_stats(self) -> Dict[str, int]:
        return {"size": self._cache.size()}

    def clear_cache(self) -> None:
        self._cache.clear()


def _entry_url(entry: Any) -> Optional[str]:
    # Deprecated manifests list bare URL strings instead of objects.
    if isinstance(entry, str):
        return normalize_agent_url(entry)
    if isinstance(entry, dict) and isinstance(entry.get("url"), str):
        return normalize_agent_url(entry["url"])
    return None
