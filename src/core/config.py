"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno y el archivo TOML local
  (pydantic-settings) sin filtrarlos hacia la CLI.
- La CLI construye `AppSettings` una vez y lo pasa a cada componente; nada
  por debajo de esta capa lee el entorno ni el directorio home por su cuenta.
"""

from __future__ import annotations

import os
import sys
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from core.errors import ConfigurationError

LOCAL_CONFIG_ENV = "LOCAL_CONFIG_PATH"
SERVER_BINARY = Path("bin") / "hedge-v3-server"


def get_user_config_dir() -> Path:
    """Per-user data directory of the Hedge application.

    Only macOS and Linux are supported; anything else is a deployment problem
    and aborts the command.
    """

    try:
        home = Path.home()
    except RuntimeError as exc:
        raise ConfigurationError(f"Cannot read HOME dir. {exc}") from exc

    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / "Hedge-v3"
    if sys.platform.startswith("linux"):
        return home / ".config" / "Hedge-v3"
    raise ConfigurationError(f"Unsupported system platform: {sys.platform}.")


def get_local_config_file() -> Path:
    override = (os.environ.get(LOCAL_CONFIG_ENV) or "").strip()
    if override:
        return Path(override)
    return get_user_config_dir() / "cli" / "config.toml"


class SiteRule(BaseModel):
    """One `site -> rule` entry of the download registry."""

    site: str = Field(..., min_length=1)
    rule: str = Field(..., min_length=1)


class DownloadSettings(BaseModel):
    proxy: str | None = Field(
        default=None,
        description="Proxy URL for every outbound fetch (http/https/socks).",
    )
    timeout_interval: int = Field(
        default=20,
        gt=0,
        description="Timeout per outbound request (seconds).",
    )
    waiting_interval: int = Field(
        default=8,
        ge=0,
        description="Spacing between two downloads of a sweep (seconds).",
    )
    available_sites: list[SiteRule] = Field(
        default_factory=list,
        description="Sites that can be downloaded and the rule that scrapes each one.",
    )

    def site_rules(self) -> dict[str, str]:
        return {entry.site: entry.rule for entry in self.available_sites}


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Sources, highest priority first: init kwargs, `HEDGE_*` env vars, the
    local `config.toml`.
    """

    model_config = SettingsConfigDict(
        env_prefix="HEDGE_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug_mode: bool = Field(
        default=False,
        description="Verbose logging on stderr.",
    )
    application_path: Path | None = Field(
        default=None,
        description="Installation path of the desktop application (optional).",
    )
    userdata_path: Path = Field(
        default_factory=get_user_config_dir,
        description="Root of every per-user Hedge directory.",
    )
    server_path: Path | None = Field(
        default=None,
        description="Server installation (defaults to <userdata>/server).",
    )
    appdata_path: Path | None = Field(
        default=None,
        description="Server data root holding the channels (defaults to <userdata>/appdata).",
    )
    server_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout per request against the local server (seconds).",
    )
    download: DownloadSettings = Field(default_factory=DownloadSettings)

    @model_validator(mode="after")
    def _derive_paths(self) -> "AppSettings":
        if self.server_path is None:
            self.server_path = self.userdata_path / "server"
        if self.appdata_path is None:
            self.appdata_path = self.userdata_path / "appdata"
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_settings = TomlConfigSettingsSource(settings_cls, toml_file=get_local_config_file())
        return (init_settings, env_settings, toml_settings)

    def channel_dir(self, channel: str) -> Path:
        assert self.appdata_path is not None
        return self.appdata_path / "channel" / channel

    def channels_root(self) -> Path:
        assert self.appdata_path is not None
        return self.appdata_path / "channel"

    def server_binary(self) -> Path:
        assert self.server_path is not None
        return self.server_path / SERVER_BINARY

    def local_data_file(self) -> Path:
        return self.userdata_path / "cli" / "local-data.json"


def load_settings(**overrides: object) -> AppSettings:
    """Build the settings once for a command.

    A malformed config file is fatal: the command cannot guess what the user
    meant.
    """

    try:
        return AppSettings(**overrides)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Local config {get_local_config_file()} format error: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid local config: {exc}") from exc
