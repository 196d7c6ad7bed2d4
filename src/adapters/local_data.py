"""Datos locales del CLI (`<userdata>/cli/local-data.json`).

Estado mutable pequeño que sobrevive entre comandos: hoy solo el canal
elegido con `hedge channel use`.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict

from core.errors import ConfigurationError, SerializationError


class LocalData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    using_channel: str | None = Field(default=None, alias="usingChannel")


class LocalDataStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    def read(self) -> LocalData:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LocalData()
        except OSError as exc:
            raise ConfigurationError(f"Read local data {self._path} failed. {exc}") from exc
        try:
            return LocalData.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SerializationError(f"Local data {self._path} format error. {exc}") from exc

    def write(self, data: LocalData) -> Path:
        payload = data.model_dump(mode="json", by_alias=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Write local data {self._path} failed. {exc}") from exc
        return self._path
