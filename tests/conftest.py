from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from core.config import AppSettings, load_settings
from core.domain.models import HealthResponse, Session, SessionRecord
from core.errors import HedgeError, TransportError


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppSettings:
    monkeypatch.setenv("LOCAL_CONFIG_PATH", str(tmp_path / "missing-config.toml"))
    return load_settings(userdata_path=tmp_path / "userdata")


class FakeRecords:
    """Record source replaying `states`; the last one sticks."""

    def __init__(self, *states: SessionRecord | None) -> None:
        self._states = list(states)
        self.reads = 0

    def read(self) -> SessionRecord | None:
        self.reads += 1
        if len(self._states) > 1:
            return self._states.pop(0)
        return self._states[0]


class FakeServer:
    """Stands in for `AuthenticatedClient` in session manager tests."""

    def __init__(self, *health: str | Exception) -> None:
        self._health = list(health)
        self.probed: list[Session] = []
        self.signals: list[int] = []
        self.bound: Session | None = None

    async def probe_health(self, session: Session) -> HealthResponse:
        self.probed.append(session)
        item = self._health.pop(0) if len(self._health) > 1 else self._health[0]
        if isinstance(item, Exception):
            raise item
        return HealthResponse(status=item)

    async def signal(self, interval_ms: int, *, session: Session | None = None) -> None:
        self.signals.append(interval_ms)

    def bind(self, session: Session) -> None:
        if self.bound is not None and self.bound != session:
            raise HedgeError("already bound")
        self.bound = session

    async def set_permanent(self, enable: bool) -> list[str]:
        return ["command-line-application"] if enable else []


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.calls)


def record(*, port: int | None = None, token: str | None = None, pid: int = 4242) -> SessionRecord:
    return SessionRecord(pid=pid, port=port, token=token, start_time=1_700_000_000_000)


def refused() -> TransportError:
    return TransportError("connection refused")
