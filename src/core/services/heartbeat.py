"""Renovación periódica del lease con el servidor.

Una tarea por sesión mantenida. Duerme `interval` segundos y luego renueva
el lease por `lease_ms`; el lease dura más que la espera, así el jitter del
scheduler no lo deja caducar. Una renovación fallida se registra en el log y
el bucle sigue.

El comando dueño cancela la tarea al terminar (`cancel()` o `async with`):
un host de larga vida nunca conserva heartbeats huérfanos.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 25.0
HEARTBEAT_LEASE_MS = 30_000


class HeartbeatTask:
    def __init__(
        self,
        renew: Callable[[int], Awaitable[Any]],
        *,
        interval: float = HEARTBEAT_INTERVAL_SECONDS,
        lease_ms: int = HEARTBEAT_LEASE_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if lease_ms <= interval * 1000:
            raise ValueError("lease must outlast the renewal interval")
        self._renew = renew
        self._interval = interval
        self._lease_ms = lease_ms
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self.renewals = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "HeartbeatTask":
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="hedge-heartbeat")
        return self

    async def _run(self) -> None:
        while True:
            await self._sleep(self._interval)
            try:
                await self._renew(self._lease_ms)
                self.renewals += 1
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.failures += 1
                logger.warning("Heartbeat cannot renew the server lease: %s", exc)

    async def cancel(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def __aenter__(self) -> "HeartbeatTask":
        return self.start()

    async def __aexit__(self, *exc: object) -> None:
        await self.cancel()
