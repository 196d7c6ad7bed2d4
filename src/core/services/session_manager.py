"""Ciclo de vida de la sesión con el servidor local.

El servidor solo se anuncia a través del session record, así que el cliente
no recibe aviso de cuándo está listo: lanza el proceso si hace falta y
consulta periódicamente. La consulta es una pequeña máquina de estados,

    UNESTABLISHED -> PENDING_RECORD -> PENDING_HEALTHY -> ESTABLISHED

donde cada `Handshake.step()` relee el record y, cuando `port` y `token`
están presentes, consulta `/app/health`. Los fallos de esa consulta son
esperables mientras el servidor arranca y se ignoran; solo un presupuesto
agotado llega al llamador.

La sesión se deriva una vez por comando. Si el servidor se reinicia durante
un comando, las llamadas siguientes fallan en vez de repetir el handshake.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterator

from adapters.server_client import AuthenticatedClient, describe_error
from adapters.session_record import SessionRecordReader
from core.config import AppSettings
from core.domain.models import (
    HealthResponse,
    ServerStatus,
    ServerStatusReport,
    Session,
    SessionMode,
    SessionRecord,
)
from core.errors import ConfigurationError, HedgeError, ProcessError, SessionTimeoutError
from core.interfaces.handshake import HealthProbe, RecordSource
from core.services.heartbeat import HeartbeatTask

logger = logging.getLogger(__name__)

POLL_ATTEMPTS = 100
POLL_INTERVAL_SECONDS = 0.1
LOG_FILENAME = "server.log"

LEASE_MS: dict[SessionMode, int] = {
    SessionMode.ONE_SHOT: 10_000,
    SessionMode.MAINTAINED: 30_000,
}


class HandshakeState(str, Enum):
    UNESTABLISHED = "unestablished"
    PENDING_RECORD = "pending-record"
    PENDING_HEALTHY = "pending-healthy"
    ESTABLISHED = "established"


class Handshake:
    """One handshake attempt sequence against a record source and a probe."""

    def __init__(self, records: RecordSource, probe: HealthProbe) -> None:
        self._records = records
        self._probe = probe
        self.state = HandshakeState.UNESTABLISHED
        self.session: Session | None = None

    async def step(self) -> HandshakeState:
        if self.state is HandshakeState.ESTABLISHED:
            return self.state

        record = self._records.read()
        if record is None or not record.is_populated:
            self.state = HandshakeState.PENDING_RECORD
            return self.state

        candidate = Session.from_record(record)
        self.state = HandshakeState.PENDING_HEALTHY
        try:
            health = await self._probe.probe_health(candidate)
        except HedgeError as exc:
            logger.debug("Health probe on %s failed: %s", candidate.address, describe_error(exc))
            return self.state

        if health.ready:
            self.session = candidate
            self.state = HandshakeState.ESTABLISHED
        else:
            logger.debug("Server on %s is %s", candidate.address, health.status)
        return self.state


def classify_status(record: SessionRecord | None, health: HealthResponse | None) -> ServerStatus:
    """Status from what was observed; `health` is `None` when the probe failed."""

    if record is None:
        return ServerStatus.STOPPED
    if not record.is_populated or health is None:
        return ServerStatus.STARTING
    if not health.ready:
        return ServerStatus.LOADING
    return ServerStatus.RUNNING


class SessionManager:
    def __init__(
        self,
        settings: AppSettings,
        channel: str,
        client: AuthenticatedClient,
        *,
        records: RecordSource | None = None,
        spawner: Callable[[], Any] | None = None,
        poll_attempts: int = POLL_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._channel = channel
        self._client = client
        self._channel_dir = settings.channel_dir(channel)
        self._records = records or SessionRecordReader.for_channel(self._channel_dir)
        self._spawner = spawner or self.spawn
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._session: Session | None = None
        self._heartbeat: HeartbeatTask | None = None

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def heartbeat(self) -> HeartbeatTask | None:
        return self._heartbeat

    @property
    def log_path(self) -> Path:
        return self._channel_dir / LOG_FILENAME

    async def _probe(self, record: SessionRecord | None) -> HealthResponse | None:
        if record is None or not record.is_populated:
            return None
        try:
            return await self._client.probe_health(Session.from_record(record))
        except HedgeError as exc:
            logger.debug("Health probe failed: %s", describe_error(exc))
            return None

    async def status(self) -> ServerStatus:
        return (await self.status_report()).status

    async def status_report(self) -> ServerStatusReport:
        """Current status; never spawns anything."""

        record = self._records.read()
        health = await self._probe(record)
        return ServerStatusReport(
            status=classify_status(record, health),
            pid=record.pid if record else None,
            port=record.port if record else None,
            start_time=record.start_time if record else None,
        )

    async def acquire(self, mode: SessionMode = SessionMode.ONE_SHOT) -> Session:
        """Establish the command's session, spawning the server if needed.

        Raises `SessionTimeoutError` once when the polling budget runs out.
        """

        if self._session is not None:
            return self._session

        if self._records.read() is None:
            self._spawner()

        handshake = Handshake(self._records, self._client)
        for _ in range(self._poll_attempts):
            await self._sleep(self._poll_interval)
            if await handshake.step() is HandshakeState.ESTABLISHED:
                break
        else:
            raise SessionTimeoutError(
                f"Check connection failed: timed out ({handshake.state.value}) after "
                f"{self._poll_attempts * self._poll_interval:.1f}s."
            )

        session = handshake.session
        assert session is not None
        self._client.bind(session)
        await self._client.signal(LEASE_MS[mode], session=session)
        self._session = session

        if mode is SessionMode.MAINTAINED:
            self._heartbeat = HeartbeatTask(self._renew_lease).start()
        return session

    async def _renew_lease(self, lease_ms: int) -> None:
        await self._client.signal(lease_ms, session=self._session)

    def spawn(self) -> None:
        """Start the server detached; does not wait for it to come up."""

        binary = self._settings.server_binary()
        args = [str(binary), "--channel-path", str(self._channel_dir)]
        logger.debug("Spawning %s", " ".join(args))
        try:
            self._channel_dir.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "wb") as log_file:
                subprocess.Popen(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as exc:
            raise ProcessError(f"Cannot start server {binary}: {exc}") from exc

    def kill(self) -> bool:
        """Kill the recorded server process. `False` when nothing was running."""

        record = self._records.read()
        if record is None:
            return False
        sig = getattr(signal, "SIGKILL", None)
        if sig is None:
            raise ProcessError("This signal isn't supported on this platform.")
        try:
            os.kill(record.pid, sig)
        except ProcessLookupError:
            return False
        except PermissionError as exc:
            raise ProcessError(f"Cannot signal server process {record.pid}: {exc}") from exc
        return True

    async def permanent(self, enable: bool) -> list[str]:
        """Toggle the server's permanent mode; any failure propagates."""

        if self._session is None:
            raise HedgeError("Server session is not established.")
        return await self._client.set_permanent(enable)

    def read_log(self) -> Iterator[str]:
        try:
            with open(self.log_path, encoding="utf-8", errors="replace") as fp:
                for line in fp:
                    yield line.rstrip("\n")
        except FileNotFoundError:
            return
        except OSError as exc:
            raise ConfigurationError(f"Read log file {self.log_path} failed. {exc}") from exc

    async def close(self) -> None:
        if self._heartbeat is not None:
            await self._heartbeat.cancel()
            self._heartbeat = None
