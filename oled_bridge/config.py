"""Typed bridge configuration built from config.txt, the environment and CLI flags."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from oled_bridge.core.config_manager import ConfigManager, get_config_manager
from oled_bridge.display.protocols import (
    DEFAULT_BAUD_RATE,
    DEFAULT_DISPLAY_HEIGHT,
    DEFAULT_DISPLAY_WIDTH,
)

DEFAULT_SERIAL_PORT = "/dev/ttyACM0"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 3000
DEFAULT_PACKAGE_NAME = "oled-bridge"
DEFAULT_SEARCH_API_URL = "https://api.perplexity.ai"

# Keys read from the process environment on top of config.txt
ENV_KEYS = frozenset({
    "SERIAL_PORT",
    "SERIAL_BAUD_RATE",
    "DISPLAY_WIDTH",
    "DISPLAY_HEIGHT",
    "SERIAL_AUTO_RECONNECT",
    "SERIAL_RECONNECT_INTERVAL_MS",
    "SERIAL_BOOT_SETTLE_MS",
    "SERIAL_COMMAND_SETTLE_MS",
    "SERIAL_MAX_ATTEMPTS",
    "SERIAL_RETRY_BASE_MS",
    "HOST",
    "PORT",
    "PACKAGE_NAME",
    "PERPLEXITY_API_KEY",
    "SEARCH_API_URL",
    "LOG_LEVEL",
    "LOG_FILE",
})


@dataclass(slots=True)
class BridgeConfig:
    serial_port: str = DEFAULT_SERIAL_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    display_width: int = DEFAULT_DISPLAY_WIDTH
    display_height: int = DEFAULT_DISPLAY_HEIGHT
    auto_reconnect: bool = True
    reconnect_interval: float = 5.0
    boot_settle_delay: float = 2.0
    command_settle_delay: float = 0.1
    max_attempts: int = 3
    retry_base_delay: float = 0.5
    host: str = DEFAULT_HOST
    http_port: int = DEFAULT_HTTP_PORT
    package_name: str = DEFAULT_PACKAGE_NAME
    search_api_key: Optional[str] = None
    search_api_url: str = DEFAULT_SEARCH_API_URL
    log_level: str = "info"
    log_file: Optional[Path] = None

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, str],
        manager: Optional[ConfigManager] = None,
    ) -> "BridgeConfig":
        """Build config from ``KEY=value`` pairs; millisecond keys become seconds."""
        cm = manager or get_config_manager()
        log_file = cm.get_str(values, "LOG_FILE")
        return cls(
            serial_port=cm.get_str(values, "SERIAL_PORT", DEFAULT_SERIAL_PORT),
            baud_rate=cm.get_int(values, "SERIAL_BAUD_RATE", DEFAULT_BAUD_RATE),
            display_width=cm.get_int(values, "DISPLAY_WIDTH", DEFAULT_DISPLAY_WIDTH),
            display_height=cm.get_int(values, "DISPLAY_HEIGHT", DEFAULT_DISPLAY_HEIGHT),
            auto_reconnect=cm.get_bool(values, "SERIAL_AUTO_RECONNECT", True),
            reconnect_interval=cm.get_int(values, "SERIAL_RECONNECT_INTERVAL_MS", 5000) / 1000.0,
            boot_settle_delay=cm.get_int(values, "SERIAL_BOOT_SETTLE_MS", 2000) / 1000.0,
            command_settle_delay=cm.get_int(values, "SERIAL_COMMAND_SETTLE_MS", 100) / 1000.0,
            max_attempts=max(1, cm.get_int(values, "SERIAL_MAX_ATTEMPTS", 3)),
            retry_base_delay=cm.get_int(values, "SERIAL_RETRY_BASE_MS", 500) / 1000.0,
            host=cm.get_str(values, "HOST", DEFAULT_HOST),
            http_port=cm.get_int(values, "PORT", DEFAULT_HTTP_PORT),
            package_name=cm.get_str(values, "PACKAGE_NAME", DEFAULT_PACKAGE_NAME),
            search_api_key=cm.get_str(values, "PERPLEXITY_API_KEY") or None,
            search_api_url=cm.get_str(values, "SEARCH_API_URL", DEFAULT_SEARCH_API_URL),
            log_level=cm.get_str(values, "LOG_LEVEL", "info").lower(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )

    def apply_args(self, args: Any) -> "BridgeConfig":
        """Override fields with CLI flags that were given."""
        if getattr(args, "port", None):
            self.serial_port = args.port
        if getattr(args, "baud_rate", None):
            self.baud_rate = args.baud_rate
        if getattr(args, "http_port", None):
            self.http_port = args.http_port
        if getattr(args, "log_level", None):
            self.log_level = args.log_level.lower()
        if getattr(args, "log_file", None):
            self.log_file = Path(args.log_file).expanduser()
        if getattr(args, "no_auto_reconnect", False):
            self.auto_reconnect = False
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["search_api_key"]:
            data["search_api_key"] = "***"
        return data


async def load_config(
    config_path: Path,
    args: Any = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    """Config file, overlaid by the environment, overlaid by CLI flags."""
    values = dict(await get_config_manager().read_config_async(config_path))
    env = os.environ if environ is None else environ
    values.update({k: v for k, v in env.items() if k in ENV_KEYS})
    config = BridgeConfig.from_mapping(values)
    if args is not None:
        config.apply_args(args)
    return config
