"""Tests for application startup, shutdown and the CLI."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from netpresence import main as app_module
from netpresence.core.errors import ConnectFailed, PublishFailed, SubscribeFailed
from netpresence.main import NetPresence

from tests.helpers import ScriptedSource


A = "aa:aa:aa:aa:aa:aa"


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "system.yaml").write_text(
        f"monitor:\n  poll_interval: 0.01\npaths:\n  logs: {tmp_path / 'logs'}\n"
    )
    return config_dir


@pytest.fixture
def event_bus() -> MagicMock:
    bus = MagicMock()
    bus.connect = AsyncMock()
    bus.disconnect = AsyncMock()
    bus.subscribe_new_device = AsyncMock()
    bus.publish_device_state = AsyncMock()
    bus.publish_alert = AsyncMock()
    return bus


@pytest.fixture
def patched(event_bus: MagicMock):
    source = ScriptedSource([[A]])
    with patch.object(app_module, "MQTTEventBus", return_value=event_bus), \
            patch.object(app_module, "create_snapshot_source", return_value=source):
        yield source


class TestNetPresence:
    """Test the application lifecycle."""

    async def test_connect_failure_is_fatal(self, config_dir, event_bus, patched) -> None:
        event_bus.connect.side_effect = ConnectFailed("connection refused")
        app = NetPresence(str(config_dir))

        with pytest.raises(ConnectFailed):
            await app.start()
        await app.stop()

        assert app.monitor is None
        assert patched.captures == 0

    async def test_subscribe_failure_releases_bus(self, config_dir, event_bus, patched) -> None:
        event_bus.subscribe_new_device.side_effect = SubscribeFailed("not authorized")
        app = NetPresence(str(config_dir))

        with pytest.raises(SubscribeFailed):
            await app.start()
        await app.stop()

        event_bus.disconnect.assert_awaited_once()
        assert patched.captures == 0

    async def test_publish_failure_stops_and_releases_bus(self, config_dir, event_bus, patched) -> None:
        event_bus.publish_device_state.side_effect = PublishFailed("NETWORK/device", "gone")
        app = NetPresence(str(config_dir))

        with pytest.raises(PublishFailed):
            await app.start()
        await app.stop()

        event_bus.disconnect.assert_awaited_once()
        assert patched.captures == 1

    async def test_shutdown_requested_before_loop(self, config_dir, event_bus, patched) -> None:
        app = NetPresence(str(config_dir), poll_interval=30)
        app.trigger_shutdown()

        await app.start()
        await app.stop()

        assert patched.captures == 0
        event_bus.publish_device_state.assert_not_awaited()
        event_bus.disconnect.assert_awaited_once()


class TestCLI:
    """Test the command line entry point."""

    def test_fatal_bus_error_exits_non_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["netpresence", "--config", "nowhere"])

        with patch.object(app_module, "async_main", AsyncMock(side_effect=ConnectFailed("refused"))):
            with pytest.raises(SystemExit) as exc_info:
                app_module.main()

        assert exc_info.value.code == 1

    def test_interval_passed_through(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["netpresence", "--config", "cfg", "--interval", "2.5"])

        with patch.object(app_module, "async_main", AsyncMock()) as async_main:
            app_module.main()

        async_main.assert_called_once_with("cfg", 2.5)

    @pytest.mark.parametrize("interval", ["0", "-1", "soon"])
    def test_invalid_interval_rejected(self, monkeypatch: pytest.MonkeyPatch, interval: str) -> None:
        monkeypatch.setattr("sys.argv", ["netpresence", "--interval", interval])

        with pytest.raises(SystemExit) as exc_info:
            app_module.main()

        assert exc_info.value.code == 2
