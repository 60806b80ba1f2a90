"""Centralized path constants for the OLED bridge."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

# Configuration
_CONFIG_ENV = os.environ.get("OLED_BRIDGE_CONFIG")
CONFIG_PATH = Path(_CONFIG_ENV).expanduser() if _CONFIG_ENV else PROJECT_ROOT / "config.txt"
