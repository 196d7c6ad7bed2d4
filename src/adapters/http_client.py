"""Wrapper de httpx para fetches salientes (sitios de terceros).

Por qué un wrapper:
- Estandariza headers, timeout, proxy y la política de reintentos, así cada
  regla de scraping se comporta igual frente a sitios remotos.
- Testeable: el `httpx.AsyncClient` subyacente y la función de espera se
  reemplazan por un `MockTransport` y un registrador.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from core.config import DownloadSettings
from core.errors import TransportError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0

BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_4) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/80.0.3987.163 Safari/537.36"
    ),
    "Accept-Encoding": "gzip, deflate",
    "Accept": "*/*",
    "Connection": "keep-alive",
}

# Only failures before any response arrived are worth another try.
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (httpx.ConnectError, httpx.TimeoutException)


def build_async_client(settings: DownloadSettings) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` para sitios externos (proxy opcional)."""

    return httpx.AsyncClient(
        timeout=httpx.Timeout(float(settings.timeout_interval)),
        follow_redirects=True,
        proxy=settings.proxy,
    )


@dataclass
class FetchAttempt:
    """Bookkeeping of one resilient fetch; lives only while it runs."""

    method: str
    url: str
    attempts: int = 0
    started: float = 0.0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


@dataclass
class FetchResult:
    response: httpx.Response
    retry_count: int


class FetchAdapter:
    def __init__(
        self,
        settings: DownloadSettings,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._client = client or build_async_client(settings)
        self._sleep = sleep
        self.calls = 0

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FetchAdapter":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def request(self, method: str, url: str) -> httpx.Request:
        return self._client.build_request(
            method,
            url,
            headers=BROWSER_HEADERS,
            timeout=float(self._settings.timeout_interval),
        )

    async def fetch_with_retry(self, method: str, url: str) -> FetchResult:
        """Send `method url`, retrying connection and timeout failures.

        At most `MAX_ATTEMPTS` tries, `RETRY_DELAY_SECONDS` apart. Any other
        failure is raised at once. HTTP status codes are left to the caller.
        """

        attempt = FetchAttempt(method=method, url=url, started=time.monotonic())
        last_error: Exception | None = None
        while attempt.attempts < MAX_ATTEMPTS:
            attempt.attempts += 1
            self.calls += 1
            try:
                response = await self._client.send(self.request(method, url))
                return FetchResult(response=response, retry_count=attempt.attempts - 1)
            except RETRYABLE_ERRORS as exc:
                last_error = exc
                logger.info(
                    "%s %s failed (%s), attempt %d/%d after %.2fs",
                    method,
                    url,
                    exc.__class__.__name__,
                    attempt.attempts,
                    MAX_ATTEMPTS,
                    attempt.elapsed,
                )
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {url}: {exc.__class__.__name__} {exc}") from exc

            if attempt.attempts < MAX_ATTEMPTS:
                await self._sleep(RETRY_DELAY_SECONDS)

        assert last_error is not None
        raise TransportError(
            f"{method} {url}: {last_error.__class__.__name__} after {attempt.attempts} attempts"
        ) from last_error

