"""Provider Adapter — one bounded call, one classified result.

Every expected failure (auth, quota, timeout, network, empty or malformed
payload) comes back as a ProviderCallResult. Only cancellation escapes.
"""

import asyncio
import logging
import time
from typing import Any, Callable

import httpx

from discovery.integrations.transport import ProviderTransport
from discovery.orchestrator.schemas import Place, ProviderCallResult

logger = logging.getLogger(__name__)

PlaceParser = Callable[[Any], list[Place]]


class ProviderAdapter:
    """Wraps the transport for a single provider with its timeout and parser."""

    def __init__(
        self,
        name: str,
        transport: ProviderTransport,
        parser: PlaceParser,
        timeout_seconds: float,
    ):
        self.name = name
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._parser = parser

    async def call(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        keyword: str,
    ) -> ProviderCallResult:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._transport(
                    self.name, latitude, longitude, radius_meters, keyword, self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            result = ProviderCallResult.timeout(
                self.name,
                error_message=f"exceeded {self.timeout_seconds}s",
                elapsed_ms=_elapsed_ms(start),
            )
        except httpx.TransportError as e:
            result = ProviderCallResult.network_error(
                self.name, error_message=str(e)[:200], elapsed_ms=_elapsed_ms(start),
            )
        except Exception as e:
            logger.error("%s transport error | %s", self.name, str(e)[:200])
            result = ProviderCallResult.unknown_error(
                self.name, error_message=str(e)[:200], elapsed_ms=_elapsed_ms(start),
            )
        else:
            result = self._classify(response, _elapsed_ms(start))

        logger.info(
            "%s | status=%s | count=%d | http=%s | %dms | radius=%d | keyword=%s",
            self.name, result.status.value, result.count,
            result.http_status_code or "N/A", result.elapsed_ms, radius_meters, keyword[:80],
        )
        return result

    def _classify(self, response: httpx.Response, elapsed_ms: int) -> ProviderCallResult:
        status = response.status_code
        common = {"http_status_code": status, "elapsed_ms": elapsed_ms}

        if status in (401, 403):
            return ProviderCallResult.api_key_invalid(self.name, **common)
        if status == 429:
            return ProviderCallResult.rate_limited(
                self.name, reason="Provider returned 429", **common,
            )
        if not 200 <= status < 300:
            return ProviderCallResult.unknown_error(
                self.name, error_message=response.text[:200], **common,
            )

        if status == 204 or not response.content.strip():
            return ProviderCallResult.no_results(self.name, **common)

        try:
            payload = response.json()
        except ValueError as e:
            return ProviderCallResult.unknown_error(
                self.name, error_message=f"Malformed payload: {str(e)[:150]}", **common,
            )

        try:
            places = self._parser(payload)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            return ProviderCallResult.unknown_error(
                self.name, error_message=f"Unexpected payload shape: {e!r}"[:200], **common,
            )

        if not places:
            return ProviderCallResult.no_results(self.name, **common)
        return ProviderCallResult.success(self.name, places, **common)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
