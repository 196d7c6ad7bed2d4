from __future__ import annotations

import httpx
import pytest

from adapters.http_client import BROWSER_HEADERS, FetchAdapter
from conftest import SleepRecorder
from core.config import DownloadSettings
from core.errors import TransportError


def make_adapter(handler, **settings) -> tuple[FetchAdapter, SleepRecorder]:
    sleeper = SleepRecorder()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FetchAdapter(DownloadSettings(**settings), client=client, sleep=sleeper), sleeper


def failing(times: int, error: type[httpx.TransportError] = httpx.ConnectError):
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] <= times:
            raise error("boom", request=request)
        return httpx.Response(200, text="ok")

    return handler, calls


def test_request_carries_browser_headers() -> None:
    adapter, _ = make_adapter(lambda request: httpx.Response(200), timeout_interval=5)

    request = adapter.request("GET", "https://example.com/post/1")

    for name, value in BROWSER_HEADERS.items():
        assert request.headers[name] == value
    assert request.extensions["timeout"]["connect"] == 5.0


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_transport_failures_are_retried(failures: int) -> None:
    handler, calls = failing(failures)
    adapter, sleeper = make_adapter(handler)

    result = await adapter.fetch_with_retry("GET", "https://example.com/")

    assert result.response.status_code == 200
    assert result.retry_count == failures
    assert calls["n"] == 1 + failures
    assert sleeper.calls == [1.0] * failures


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [3, 5])
async def test_gives_up_after_three_attempts(failures: int) -> None:
    handler, calls = failing(failures, httpx.ReadTimeout)
    adapter, sleeper = make_adapter(handler)

    with pytest.raises(TransportError) as info:
        await adapter.fetch_with_retry("GET", "https://example.com/")

    assert isinstance(info.value.__cause__, httpx.ReadTimeout)
    assert calls["n"] == 3
    assert adapter.calls == 3
    assert sleeper.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_other_failures_are_not_retried() -> None:
    handler, calls = failing(1, httpx.RemoteProtocolError)
    adapter, sleeper = make_adapter(handler)

    with pytest.raises(TransportError):
        await adapter.fetch_with_retry("GET", "https://example.com/")

    assert calls["n"] == 1
    assert sleeper.calls == []


@pytest.mark.asyncio
async def test_http_error_status_is_returned_without_retry() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(503)

    adapter, _ = make_adapter(handler)
    result = await adapter.fetch_with_retry("GET", "https://example.com/")

    assert result.response.status_code == 503
    assert result.retry_count == 0
    assert len(calls) == 1
