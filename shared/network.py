"""
Wi-Fi Sentry Async HTTP Client
==============================

:class:`SentryHTTP` wraps :class:`httpx.AsyncClient` for the two places
Sentry talks to the network every scan cycle: the remote history
provider (GET) and the webhook sink (POST).

Because those calls repeat every few seconds, a dead endpoint must not
cost a full retry sequence on every cycle.  After ``trip_after``
consecutive failed calls the client fails fast for ``cooldown`` seconds,
then lets one trial call through to the endpoint again.

Transient failures (transport errors, timeouts, 429 and 5xx) are retried
with "full jitter" exponential backoff.

References:
    - Nygard, M. T. (2018). Release It! 2nd ed. Chapter 5: Circuit Breaker.
    - AWS Architecture Blog (2015). Exponential Backoff and Jitter.
    - HTTPX documentation. https://www.python-httpx.org/async/
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from shared.logger import SentryLogger

logger = SentryLogger("shared.network")

_RETRY_STATUS = frozenset({429, 500, 502, 503, 504})


class SentryHTTPError(Exception):
    """A call failed after retries, or was refused by an open breaker."""


@dataclass(slots=True)
class FailFast:
    """Consecutive-failure breaker.  ``opened_at`` is ``None`` while closed."""

    trip_after: int = 5
    cooldown: float = 30.0
    failures: int = 0
    opened_at: Optional[float] = None
    clock: Callable[[], float] = time.monotonic

    def blocked(self) -> bool:
        if self.opened_at is None:
            return False
        # Past the cooldown a single trial call is allowed; its outcome re-arms.
        return self.clock() - self.opened_at < self.cooldown

    def success(self) -> None:
        if self.opened_at is not None:
            logger.info("Endpoint recovered after %d failures", self.failures)
        self.failures = 0
        self.opened_at = None

    def failure(self) -> None:
        self.failures += 1
        if self.failures >= self.trip_after:
            if self.opened_at is None:
                logger.warning(
                    "Failing fast for %.0fs after %d failed calls",
                    self.cooldown,
                    self.failures,
                )
            self.opened_at = self.clock()


class SentryHTTP:
    """Retrying JSON client shared by history and webhook integrations.

    Args:
        timeout:      Per-request timeout in seconds.
        max_retries:  Extra attempts after the first on transient errors.
        backoff_base: First backoff ceiling in seconds; doubles per attempt.
        backoff_max:  Upper bound on any single backoff.
        trip_after:   Consecutive failed calls before failing fast.
        cooldown:     Seconds to fail fast once tripped.
        transport:    Optional httpx transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        trip_after: int = 5,
        cooldown: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self.breaker = FailFast(trip_after=trip_after, cooldown=cooldown)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": "wifisentry"},
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> SentryHTTP:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self.breaker.blocked():
            raise SentryHTTPError(f"{url} is failing; skipped {method}")

        attempts = self._max_retries + 1
        problem = "no attempt made"
        for attempt in range(attempts):
            if attempt:
                await self._sleep_before(attempt)
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TransportError as exc:
                problem = f"{type(exc).__name__}: {exc}"
            else:
                if response.status_code not in _RETRY_STATUS:
                    if response.is_error:
                        self.breaker.failure()
                        raise SentryHTTPError(
                            f"{method} {url} returned HTTP {response.status_code}"
                        )
                    self.breaker.success()
                    return response
                problem = f"HTTP {response.status_code}"
            logger.warning(
                "%s %s failed (%s), attempt %d/%d",
                method, url, problem, attempt + 1, attempts,
            )

        self.breaker.failure()
        raise SentryHTTPError(f"{method} {url} failed after {attempts} attempts: {problem}")

    async def _sleep_before(self, attempt: int) -> None:
        ceiling = min(self._backoff_max, self._backoff_base * 2 ** (attempt - 1))
        await asyncio.sleep(random.uniform(0, ceiling))

    async def fetch_json(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        """GET *url* and decode the JSON body."""
        response = await self._send("GET", url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise SentryHTTPError(f"{url} did not return JSON") from exc

    async def post_json(self, url: str, payload: Any) -> httpx.Response:
        return await self._send("POST", url, json=payload)
