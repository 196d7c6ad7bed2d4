"""Contracts of the session handshake.

Why Protocol:
- The handshake state machine only needs "read the record" and "probe the
  health endpoint"; tests drive it with a fake record source and a fake
  health responder instead of a real file and a real server.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import HealthResponse, Session, SessionRecord


@runtime_checkable
class RecordSource(Protocol):
    def read(self) -> SessionRecord | None:
        """Current content of the session record, `None` when absent."""

        ...


@runtime_checkable
class HealthProbe(Protocol):
    async def probe_health(self, session: Session) -> HealthResponse:
        """`GET /app/health` against `session`; raises on any failure."""

        ...
