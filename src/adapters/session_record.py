"""Lectura del session record (`<channel>/PID`).

El servidor escribe este JSON; el cliente solo lo lee, una y otra vez, hasta
que aparecen `port` y `token`. Si no existe, el servidor no arrancó y no es
un error. Un archivo que existe pero no se puede leer o parsear es un
problema del entorno y aborta el comando.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from core.domain.models import SessionRecord
from core.errors import ConfigurationError, SerializationError

RECORD_FILENAME = "PID"


class SessionRecordReader:
    def __init__(self, path: Path) -> None:
        self._path = path

    @classmethod
    def for_channel(cls, channel_dir: Path) -> "SessionRecordReader":
        return cls(channel_dir / RECORD_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> SessionRecord | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ConfigurationError(f"Read pid file {self._path} failed. {exc}") from exc

        try:
            return SessionRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SerializationError(f"Pid file {self._path} format error. {exc}") from exc
