"""Allow ``python -m oled_bridge`` to launch the bridge."""

from __future__ import annotations

from oled_bridge.app.master import run


if __name__ == "__main__":
    raise SystemExit(run())
