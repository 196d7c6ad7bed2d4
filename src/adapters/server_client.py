"""Cliente HTTP autenticado contra el servidor local.

Por qué un wrapper sobre httpx:
- La dirección y el token del servidor solo se conocen tras el handshake, así
  que el cliente nace sin sesión y se asocia exactamente una vez a una
  `Session`.
- Todas las llamadas siguen el mismo contrato: 2xx/3xx se decodifican en la
  forma pedida, lo demás en `{code, message}`. Las excepciones de librerías se
  traducen a `core.errors` aquí y en ningún otro lugar.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from core.config import AppSettings
from core.domain.models import ErrorResult, HealthResponse, Session
from core.errors import HedgeError, ProtocolError, SerializationError, TransportError

HEALTH_PATH = "/app/health"
SIGNAL_PATH = "/app/lifetime/signal"
PERMANENT_PATH = "/app/lifetime/permanent"
PERMANENT_TYPE = "command-line-application"


def build_server_client(settings: AppSettings) -> httpx.AsyncClient:
    """`httpx.AsyncClient` for the local server (no proxy, short timeout)."""

    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.server_timeout_seconds),
        follow_redirects=True,
        trust_env=False,
        headers={"Accept": "application/json"},
    )


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 400


class AuthenticatedClient:
    """Issues requests against the server bound through `bind`.

    Unbound, `path` is used verbatim as a full URL (tooling and tests).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._session: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    def bind(self, session: Session) -> None:
        if self._session is not None and self._session != session:
            raise HedgeError("Client is already bound to another server session.")
        self._session = session

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AuthenticatedClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def _url(self, path: str, session: Session | None) -> str:
        if session is None:
            return path
        return f"{session.address}{path}"

    async def call(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        query: dict[str, Any] | list[tuple[str, Any]] | None = None,
        response_model: Any = None,
        session: Session | None = None,
    ) -> Any:
        """Send one request and decode its body.

        `response_model` is any type pydantic can validate (`ListResult[X]`,
        `list[IdWithWarning]`...). With `None` the body is not inspected.
        `session` overrides the bound session for this call only.
        """

        session = session or self._session
        headers: dict[str, str] = {}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.token}"

        try:
            response = await self._client.request(
                method,
                self._url(path, session),
                json=body,
                params=query,
                headers=headers,
            )
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {path}: {exc.__class__.__name__} {exc}") from exc

        if _is_success(response.status_code):
            if response_model is None:
                return None
            try:
                return TypeAdapter(response_model).validate_json(response.content)
            except ValidationError as exc:
                raise SerializationError(f"{method} {path}: unexpected response body. {exc}") from exc

        try:
            err = ErrorResult.model_validate_json(response.content)
        except ValidationError as exc:
            raise SerializationError(
                f"{method} {path}: HTTP {response.status_code} with undecodable error body."
            ) from exc
        raise ProtocolError(err.code, err.message)

    async def probe_health(self, session: Session) -> HealthResponse:
        return await self.call("GET", HEALTH_PATH, response_model=HealthResponse, session=session)

    async def signal(self, interval_ms: int, *, session: Session | None = None) -> None:
        """Renew the client lease for `interval_ms`. The body is not inspected."""

        await self.call(
            "POST",
            SIGNAL_PATH,
            body={"interval": interval_ms, "standalone": True},
            session=session,
        )

    async def set_permanent(self, enable: bool) -> list[str]:
        return await self.call(
            "POST",
            PERMANENT_PATH,
            body={"type": PERMANENT_TYPE, "value": enable},
            response_model=list[str],
        )


def describe_error(exc: Exception) -> str:
    """One-line rendering of an error for logs and console output."""

    if isinstance(exc, ProtocolError):
        return f"{exc.code}: {exc.message}"
    return str(exc) or exc.__class__.__name__
