"""Component-tagged loggers under the ``oled_bridge`` namespace."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

NAMESPACE = "oled_bridge"
DEFAULT_COMPONENT = "Core"


def _qualify(name: Optional[str]) -> str:
    if not name or name == NAMESPACE:
        return NAMESPACE
    if name.startswith(NAMESPACE + "."):
        return name
    return f"{NAMESPACE}.{name}"


def _component_of(qualified: str) -> str:
    # "oled_bridge.app.master" -> "master", "oled_bridge.SerialLink" -> "SerialLink"
    tail = qualified[len(NAMESPACE):].lstrip(".")
    return tail.rsplit(".", 1)[-1] if tail else DEFAULT_COMPONENT


class StructuredLogger(logging.LoggerAdapter):
    """Prefixes every message with ``[Component]``.

    Arguments are interpolated here rather than by the handler, so a
    mismatched format string still produces a readable line instead of a
    logging traceback on stderr.
    """

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        super().__init__(logger, {})
        self.component = component or _component_of(logger.name)

    def _render(self, msg: object, args: Tuple[Any, ...]) -> str:
        text = str(msg)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(map(str, args))}"
        prefix = f"[{self.component}]"
        return text if text.startswith(prefix) else f"{prefix} {text}"

    def log(self, level: int, msg: object, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        # caller -> info() -> log() -> Logger.log()
        kwargs.setdefault("stacklevel", 3)
        self.logger.log(level, self._render(msg, args), **kwargs)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """``get_module_logger("SerialLink")`` logs as ``oled_bridge.SerialLink`` with a ``[SerialLink]`` tag."""
    return StructuredLogger(logging.getLogger(_qualify(name)))


__all__ = ["StructuredLogger", "get_module_logger"]
