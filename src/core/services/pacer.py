"""Espaciado entre descargas consecutivas.

La espera se reduce en lo que ya costó la descarga anterior, en segundos
enteros, pero nunca baja de la mitad del espaciado configurado (redondeada
hacia abajo).
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable


class Pacer:
    """Whole-second delay between items.

    The floor is `waiting_seconds // 2`, rounded down: with an odd spacing the
    shortest delay is half a second under the exact half (`Pacer(9)` never
    waits less than 4s, `Pacer(1)` may not wait at all).
    """

    def __init__(
        self,
        waiting_seconds: int,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if waiting_seconds < 0:
            raise ValueError("waiting_seconds must be >= 0")
        self.waiting_seconds = waiting_seconds
        self._sleep = sleep

    def delay_for(self, previous_cost_ms: int) -> int:
        cost = max(0, previous_cost_ms) // 1000
        return max(self.waiting_seconds - cost, self.waiting_seconds // 2)

    async def wait(self, previous_cost_ms: int) -> int:
        delay = self.delay_for(previous_cost_ms)
        if delay > 0:
            await self._sleep(delay)
        return delay
