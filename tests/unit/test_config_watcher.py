"""Unit tests for calendarapi.core.config_watcher."""

import asyncio
import os

import pytest
import yaml

from calendarapi.core.config_manager import ConfigProvider
from calendarapi.core.config_watcher import ConfigWatcher

pytestmark = pytest.mark.unit


def _write(path, data, mtime):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    os.utime(path, (mtime, mtime))


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    _write(path, {"server": {"refresh": "30m"}}, 1_000_000_000)
    return path


class TestConfigWatcher:
    """Tests for polling reloads."""

    async def test_check_once_when_unchanged_then_no_callback(self, config_path):
        calls = []

        async def on_reload(provider):
            calls.append(provider)

        watcher = ConfigWatcher(ConfigProvider(config_path), on_reload)

        assert await watcher.check_once() is False
        assert calls == []

    async def test_check_once_when_changed_then_reloads_and_notifies(self, config_path):
        calls = []

        async def on_reload(provider):
            calls.append(provider.refresh_interval().total_seconds())

        watcher = ConfigWatcher(ConfigProvider(config_path), on_reload)
        _write(config_path, {"server": {"refresh": "5m"}}, 1_000_000_100)

        assert await watcher.check_once() is True
        assert calls == [300.0]

    async def test_check_once_when_reload_fails_then_no_callback(self, config_path):
        calls = []

        async def on_reload(provider):
            calls.append(provider)

        provider = ConfigProvider(config_path)
        watcher = ConfigWatcher(provider, on_reload)
        config_path.write_text("server: [broken", encoding="utf-8")
        os.utime(config_path, (1_000_000_100, 1_000_000_100))

        assert await watcher.check_once() is False
        assert calls == []
        assert provider.refresh_interval().total_seconds() == 1800.0

    async def test_callback_errors_are_contained(self, config_path):
        async def on_reload(_provider):
            raise RuntimeError("listener failed")

        watcher = ConfigWatcher(ConfigProvider(config_path), on_reload)
        _write(config_path, {"server": {"refresh": "5m"}}, 1_000_000_100)

        assert await watcher.check_once() is True

    async def test_background_polling_picks_up_changes(self, config_path):
        reloaded = asyncio.Event()

        async def on_reload(_provider):
            reloaded.set()

        watcher = ConfigWatcher(ConfigProvider(config_path), on_reload, poll_interval=0.01)
        watcher.start()
        try:
            _write(config_path, {"server": {"refresh": "5m"}}, 1_000_000_100)
            await asyncio.wait_for(reloaded.wait(), timeout=2)
        finally:
            await watcher.stop()

    def test_start_without_file_is_noop(self):
        async def on_reload(_provider):
            pass

        watcher = ConfigWatcher(ConfigProvider(data={}), on_reload)
        watcher.start()

        assert watcher._task is None
