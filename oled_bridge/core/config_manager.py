"""Reader for ``KEY=value`` config files (``config.txt`` or a dotenv file)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

import aiofiles

from .logging_utils import get_module_logger

logger = get_module_logger("ConfigManager")

TRUE_VALUES = frozenset({'true', '1', 'yes', 'on'})
QUOTES = ('"', "'")


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    line = line.strip()
    if not line or line.startswith('#') or '=' not in line:
        return None

    key, value = (part.strip() for part in line.split('=', 1))
    if key.startswith('export '):
        key = key[len('export '):].strip()
    if not key:
        return None

    if len(value) >= 2 and value[0] in QUOTES and value[-1] == value[0]:
        return key, value[1:-1]
    return key, value.split('#', 1)[0].strip()


class ConfigManager:
    """
    Blank lines and ``#`` comments are skipped. A value wrapped in matching
    quotes is taken literally (``#`` included); otherwise anything after
    ``#`` is a comment. ``export KEY=value`` is accepted.
    """

    def __init__(self):
        self._read_lock = asyncio.Lock()

    @staticmethod
    def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        parsed = (_parse_line(line) for line in lines)
        return dict(pair for pair in parsed if pair is not None)

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Missing or unreadable files yield an empty mapping."""
        if not await asyncio.to_thread(config_path.is_file):
            logger.debug("No config file at %s", config_path)
            return {}

        async with self._read_lock:
            try:
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                    text = await f.read()
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)
                return {}

        values = self.parse_config_lines(text.splitlines())
        logger.debug("Loaded %d keys from %s", len(values), config_path)
        return values

    @staticmethod
    def get_str(values: Mapping[str, str], key: str, default: str = "") -> str:
        return values.get(key) or default

    @staticmethod
    def get_bool(values: Mapping[str, str], key: str, default: bool = False) -> bool:
        raw = values.get(key)
        if not raw:
            return default
        return raw.strip().lower() in TRUE_VALUES

    @staticmethod
    def get_int(values: Mapping[str, str], key: str, default: int = 0) -> int:
        raw = values.get(key)
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid integer for %s: %r, using %d", key, raw, default)
            return default


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager
