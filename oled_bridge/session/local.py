"""
In-process session used by the webhook endpoint.

The dashboard is a plain dict and layouts are logged and kept in a short
history, so the HTTP status routes and tests can see what the user would
have been shown.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional

from oled_bridge.core.logging_utils import get_module_logger
from .types import DashboardContent

logger = get_module_logger("LocalSession")

LAYOUT_HISTORY_SIZE = 50


@dataclass
class LayoutRecord:
    kind: str
    text: str
    title: Optional[str] = None
    duration_ms: Optional[int] = None


class LocalLayouts:
    def __init__(self, session_id: str, history_size: int = LAYOUT_HISTORY_SIZE):
        self.session_id = session_id
        self.history: Deque[LayoutRecord] = deque(maxlen=history_size)

    @property
    def last(self) -> Optional[LayoutRecord]:
        return self.history[-1] if self.history else None

    async def show_text_wall(self, text: str, duration_ms: Optional[int] = None) -> None:
        logger.info("[%s] Text wall: %s", self.session_id, text)
        self.history.append(LayoutRecord("text_wall", text, duration_ms=duration_ms))

    async def show_reference_card(
        self,
        title: str,
        text: str,
        duration_ms: Optional[int] = None,
    ) -> None:
        logger.info("[%s] Reference card: %s", self.session_id, title)
        self.history.append(LayoutRecord("reference_card", text, title=title, duration_ms=duration_ms))


class LocalDashboard:
    def __init__(self):
        self.content: Optional[DashboardContent] = None

    async def get_content(self) -> Optional[DashboardContent]:
        return self.content

    async def set_content(self, content: DashboardContent) -> None:
        self.content = copy.deepcopy(content)

    async def update_content(self, content: DashboardContent) -> None:
        if self.content is None:
            self.content = {}
        self.content.update(content)

    async def clear_content(self) -> None:
        self.content = None


@dataclass
class LocalSession:
    session_id: str
    user_id: str = ""
    layouts: LocalLayouts = field(init=False)
    dashboard: LocalDashboard = field(default_factory=LocalDashboard)
    started: bool = False

    def __post_init__(self) -> None:
        self.layouts = LocalLayouts(self.session_id)

    def snapshot(self) -> Dict[str, Any]:
        last = self.layouts.last
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "started": self.started,
            "dashboard": self.dashboard.content,
            "lastLayout": None if last is None else {
                "kind": last.kind,
                "title": last.title,
                "text": last.text,
            },
        }
