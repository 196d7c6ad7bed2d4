"""Selección de canal.

Un canal es una partición aislada de trabajo/datos del servidor
(`<appdata>/channel/<name>`). La selección se guarda en el archivo de datos
locales y se resuelve una sola vez, antes de lanzar nada.
"""

from __future__ import annotations

from adapters.local_data import LocalData, LocalDataStore
from core.config import AppSettings
from core.errors import ConfigurationError

DEFAULT_CHANNEL = "default"


class ChannelManager:
    def __init__(self, settings: AppSettings, store: LocalDataStore | None = None) -> None:
        self._settings = settings
        self._store = store or LocalDataStore(settings.local_data_file())
        self._channel = self._store.read().using_channel or DEFAULT_CHANNEL

    @property
    def current_channel(self) -> str:
        return self._channel

    def use_channel(self, channel: str) -> None:
        name = channel.strip()
        if not name or "/" in name or name in (".", ".."):
            raise ConfigurationError(f"Invalid channel name: {channel!r}.")
        self._store.write(LocalData(using_channel=name))
        self._channel = name

    def list_channels(self) -> list[str]:
        root = self._settings.channels_root()
        try:
            return sorted(p.name for p in root.iterdir() if p.is_dir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise ConfigurationError(f"Cannot read channel dir {root}: {exc}") from exc
