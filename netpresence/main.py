"""Main application entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from netpresence import __version__
from netpresence.core.config import ConfigManager
from netpresence.core.errors import BusError
from netpresence.core.mqtt_bus import MQTTEventBus
from netpresence.presence import Notifier, PresenceMonitor, PresenceTracker
from netpresence.source import create_snapshot_source


class NetPresence:
    """Main application class."""

    def __init__(self, config_dir: str = "config", poll_interval: Optional[float] = None):
        self.config_dir = config_dir
        self.poll_interval_override = poll_interval
        self.config_manager: Optional[ConfigManager] = None
        self.event_bus: Optional[MQTTEventBus] = None
        self.notifier: Optional[Notifier] = None
        self.monitor: Optional[PresenceMonitor] = None
        self._running = False
        self._shutdown_requested = False

    async def start(self) -> None:
        """
        Start the application and run the presence loop until shutdown.

        Raises:
            BusError: On connect, subscribe or device list publish failure
        """
        print("=" * 60)
        print("📡 netpresence - Network Presence Monitor")
        print("=" * 60)

        # Load configuration
        print("\n📋 Loading configuration...")
        self.config_manager = ConfigManager(self.config_dir)
        self.config_manager.load()

        # Setup logging
        self._setup_logging()

        logger = logging.getLogger(__name__)
        logger.info("Starting netpresence...")

        monitor_config = self.config_manager.get_monitor_config()
        poll_interval = self.poll_interval_override or monitor_config["poll_interval"]
        source = create_snapshot_source(monitor_config)

        # Connect to MQTT
        print("🔌 Connecting to MQTT broker...")
        self.event_bus = MQTTEventBus(**self.config_manager.get_mqtt_config())
        await self.event_bus.connect()
        self._running = True

        self.notifier = Notifier(self.event_bus)
        await self.notifier.start()

        self.monitor = PresenceMonitor(
            source=source,
            tracker=PresenceTracker(),
            notifier=self.notifier,
            poll_interval=poll_interval,
        )
        if self._shutdown_requested:
            self.monitor.stop()

        print("\n✅ netpresence is running!")
        print(f"   Scanning every {poll_interval}s")
        print("   Press Ctrl+C to stop\n")

        logger.info("netpresence started successfully")

        await self.monitor.run()

    async def stop(self) -> None:
        """Stop the application. Runs on every exit path."""
        logger = logging.getLogger(__name__)

        if self.monitor:
            self.monitor.stop()

        if not self._running:
            return

        logger.info("Stopping netpresence...")
        print("\n⏸️  Stopping netpresence...")

        try:
            if self.notifier:
                await self.notifier.stop()
        finally:
            # Disconnect MQTT
            if self.event_bus:
                print("🔌 Disconnecting from MQTT broker...")
                await self.event_bus.disconnect()

        self._running = False

        print("✅ netpresence stopped gracefully\n")
        logger.info("netpresence stopped")

    def _setup_logging(self) -> None:
        """Setup logging configuration."""
        log_level = self.config_manager.get_log_level()

        # Create logs directory
        paths = self.config_manager.get_paths()
        logs_dir = paths["logs"]
        logs_dir.mkdir(parents=True, exist_ok=True)

        # Configure root logger
        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(logs_dir / "netpresence.log"),
            ],
        )

        # Reduce noise from libraries
        logging.getLogger("aiomqtt").setLevel(logging.WARNING)

    def trigger_shutdown(self) -> None:
        """Trigger graceful shutdown."""
        self._shutdown_requested = True
        if self.monitor:
            self.monitor.stop()


async def async_main(config_dir: str = "config", poll_interval: Optional[float] = None) -> None:
    """Async main function."""
    app = NetPresence(config_dir, poll_interval=poll_interval)

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler():
        print("\n\n⚠️  Shutdown signal received...")
        app.trigger_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    finally:
        await app.stop()


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="netpresence - Network Presence Monitor")
    parser.add_argument(
        "--config",
        default="config",
        help="Configuration directory (default: config)",
    )
    parser.add_argument(
        "--interval",
        type=_positive_float,
        default=None,
        help="Seconds between scans (overrides monitor.poll_interval)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"netpresence {__version__}",
    )

    args = parser.parse_args()

    # Run the application
    try:
        asyncio.run(async_main(args.config, args.interval))
    except KeyboardInterrupt:
        pass
    except BusError as e:
        print(f"\n❌ Message bus error: {e}", file=sys.stderr)
        logging.error(f"Fatal bus error: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}", file=sys.stderr)
        logging.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
