import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from oled_bridge import __version__
from oled_bridge.config import BridgeConfig, load_config
from oled_bridge.core.api import APIController, APIServer
from oled_bridge.core.errors import LinkOpenError
from oled_bridge.core.logging_config import configure_logging
from oled_bridge.core.logging_utils import get_module_logger
from oled_bridge.core.paths import CONFIG_PATH
from oled_bridge.core.shutdown_coordinator import ShutdownCoordinator
from oled_bridge.dashboard import DashboardController
from oled_bridge.display import ConnectionSupervisor, DisplayController
from oled_bridge.search import WebSearchService
from oled_bridge.session import SessionEventHandler
from oled_bridge.voice import VoiceCommandProcessor


logger = get_module_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; unset flags fall back to config.txt and the environment."""
    parser = argparse.ArgumentParser(
        description="OLED Bridge - voice-driven serial OLED display service"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help=f"Path to the key=value config file (default: {CONFIG_PATH.name})"
    )

    parser.add_argument(
        "--port",
        type=str,
        help="Serial device path of the display (default: /dev/ttyACM0)"
    )

    parser.add_argument(
        "--baud-rate",
        type=int,
        help="Serial baud rate (default: 9600)"
    )

    parser.add_argument(
        "--http-port",
        type=int,
        help="HTTP port for the webhook and status endpoints (default: 3000)"
    )

    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        help="Logging level (default: info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also log to this rotating file"
    )

    parser.add_argument(
        "--no-auto-reconnect",
        action="store_true",
        help="Exit if the display cannot be opened instead of retrying"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def build_components(config: BridgeConfig):
    """Wire the supervisor, collaborators and HTTP server from ``config``."""
    supervisor = ConnectionSupervisor.from_config(config)
    display = DisplayController(supervisor.sender, config.display_width, config.display_height)
    dashboard = DashboardController(config.display_width, config.display_height)
    search = WebSearchService(config.search_api_key, config.search_api_url)
    voice = VoiceCommandProcessor(display, dashboard, search)
    session_handler = SessionEventHandler(display, dashboard, voice)

    controller = APIController(supervisor, display, session_handler, package_name=config.package_name)
    server = APIServer(controller, host=config.host, port=config.http_port)
    return supervisor, search, server


async def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for the OLED bridge.

    Shutdown Sequence:
    1. SIGINT/SIGTERM requests shutdown through the ShutdownCoordinator
    2. Cleanups run newest first: HTTP server, search client, display supervisor
    3. The supervisor rejects still-queued commands and closes the serial port
    """
    args = parse_args(argv)
    config = await load_config(args.config, args)

    configure_logging(config.log_level, force=True, log_file=config.log_file)

    logger.info("=" * 60)
    logger.info("OLED Bridge %s starting", __version__)
    logger.info("=" * 60)
    logger.info("Config file: %s", args.config)
    logger.info("Serial port: %s @ %d baud", config.serial_port, config.baud_rate)
    logger.info("Auto-reconnect: %s", "on" if config.auto_reconnect else "off")
    if config.log_file:
        logger.info("Log file: %s", config.log_file)

    supervisor, search, server = build_components(config)

    shutdown_coordinator = ShutdownCoordinator()
    shutdown_coordinator.register_cleanup(supervisor.shutdown)
    shutdown_coordinator.register_cleanup(search.close)
    shutdown_coordinator.register_cleanup(server.stop)

    loop = asyncio.get_running_loop()

    def signal_handler():
        shutdown_coordinator.request_shutdown("signal")

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    try:
        if await supervisor.start():
            logger.info("Display controller initialized")
        else:
            logger.warning("Display not available yet; commands will be queued until it connects")

        await server.start()
        logger.info("Application initialized successfully")

        await shutdown_coordinator.wait_for_request()
    except LinkOpenError as e:
        logger.error("Initialization error: %s", e)
        raise
    finally:
        if not shutdown_coordinator.is_complete:
            await shutdown_coordinator.initiate_shutdown("main")

    logger.info("OLED Bridge stopped")


def run(argv: Optional[list[str]] = None) -> int:
    try:
        asyncio.run(main(argv))
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
