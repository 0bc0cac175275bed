"""Provider transport — the raw HTTP side of every provider call.

The engine only sees `ProviderTransport`: one awaitable call per provider
request that returns an `httpx.Response` or raises an httpx error.
Classification of the outcome happens in the provider adapter.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

import httpx

from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)

# (provider, latitude, longitude, radius_meters, keyword, timeout_seconds) -> response
ProviderTransport = Callable[[str, float, float, int, str, float], Awaitable[httpx.Response]]


@dataclass
class ProviderRequest:
    method: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    json: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


class ProviderClient(Protocol):
    name: str

    def build_request(
        self, latitude: float, longitude: float, radius_meters: int, keyword: str,
    ) -> ProviderRequest: ...

    def parse_places(self, payload: Any) -> list[Place]: ...


class HttpProviderTransport:
    """Default transport: one short-lived httpx client per call."""

    def __init__(self, clients: dict[str, ProviderClient]):
        self._clients = dict(clients)

    def client(self, provider: str) -> ProviderClient:
        return self._clients[provider]

    async def __call__(
        self,
        provider: str,
        latitude: float,
        longitude: float,
        radius_meters: int,
        keyword: str,
        timeout: float,
    ) -> httpx.Response:
        outbound = self._clients[provider].build_request(latitude, longitude, radius_meters, keyword)
        async with httpx.AsyncClient(timeout=timeout) as http:
            return await http.request(
                outbound.method,
                outbound.url,
                params=outbound.params or None,
                json=outbound.json,
                headers=outbound.headers or None,
            )
