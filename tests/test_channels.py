from __future__ import annotations

import json

import pytest

from core.errors import ConfigurationError
from core.services.channels import DEFAULT_CHANNEL, ChannelManager


def test_default_channel(settings) -> None:
    assert ChannelManager(settings).current_channel == DEFAULT_CHANNEL


def test_use_channel_persists(settings) -> None:
    ChannelManager(settings).use_channel("work")

    data = json.loads(settings.local_data_file().read_text(encoding="utf-8"))
    assert data == {"usingChannel": "work"}
    assert ChannelManager(settings).current_channel == "work"


@pytest.mark.parametrize("name", ["", "  ", "../etc", ".."])
def test_invalid_channel_names(settings, name: str) -> None:
    with pytest.raises(ConfigurationError):
        ChannelManager(settings).use_channel(name)


def test_list_channels(settings) -> None:
    manager = ChannelManager(settings)
    assert manager.list_channels() == []

    for name in ("work", "default"):
        settings.channel_dir(name).mkdir(parents=True)
    (settings.channels_root() / "stray.txt").write_text("", encoding="utf-8")

    assert manager.list_channels() == ["default", "work"]
