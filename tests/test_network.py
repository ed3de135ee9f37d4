"""Tests for the retrying HTTP client."""

import httpx
import pytest

from shared.network import FailFast, SentryHTTP, SentryHTTPError

URL = "http://sink.local/hook"


def _client(handler, **kwargs):
    kwargs.setdefault("backoff_base", 0.0)
    return SentryHTTP(transport=httpx.MockTransport(handler), **kwargs)


class TestSentryHTTP:
    @pytest.mark.asyncio
    async def test_retries_transient_status(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503 if len(calls) < 3 else 200, json={"ok": True})

        async with _client(handler, max_retries=2) as http:
            assert await http.fetch_json(URL) == {"ok": True}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_retries_transport_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(204)

        async with _client(handler, max_retries=1) as http:
            response = await http.post_json(URL, {"type": "scan-result"})
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with _client(handler, max_retries=3) as http:
            with pytest.raises(SentryHTTPError, match="404"):
                await http.fetch_json(URL)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries(self):
        async with _client(lambda request: httpx.Response(500), max_retries=1) as http:
            with pytest.raises(SentryHTTPError, match="after 2 attempts"):
                await http.fetch_json(URL)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as http:
            with pytest.raises(SentryHTTPError, match="JSON"):
                await http.fetch_json(URL)

    @pytest.mark.asyncio
    async def test_fails_fast_once_tripped(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler, max_retries=0, trip_after=2, cooldown=60) as http:
            for _ in range(2):
                with pytest.raises(SentryHTTPError):
                    await http.post_json(URL, {})
            with pytest.raises(SentryHTTPError, match="skipped"):
                await http.post_json(URL, {})
        assert len(calls) == 2


class TestFailFast:
    def test_trial_call_after_cooldown(self):
        now = [100.0]
        breaker = FailFast(trip_after=1, cooldown=10, clock=lambda: now[0])
        breaker.failure()
        assert breaker.blocked()

        now[0] = 111.0
        assert not breaker.blocked()
        breaker.success()
        assert breaker.opened_at is None
        assert breaker.failures == 0
