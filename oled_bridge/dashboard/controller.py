"""
Dashboard Controller

Maintains the session dashboard: a main status tile plus expanded sections
describing the OLED display. Dashboard updates are cosmetic, so every
failure is logged and swallowed here rather than interrupting a command.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from oled_bridge.core.logging_utils import get_module_logger
from oled_bridge.display.protocols import DEFAULT_DISPLAY_HEIGHT, DEFAULT_DISPLAY_WIDTH
from oled_bridge.session.types import Session

logger = get_module_logger("DashboardController")

STATUS_TITLE = "OLED Status"
STATUS_OK_COLOR = "#00ff00"
LAST_DISPLAYED_LABEL = "Last Displayed"
MAX_ITEM_LENGTH = 20

DISPLAY_MODEL = "CFAL12856A0-0151-B"
DISPLAY_DRIVER = "SSD1309"


def truncate_item(value: str, limit: int = MAX_ITEM_LENGTH) -> str:
    """Cut ``value`` to fit a dashboard item, marking the cut with '...'."""
    if len(value) <= limit:
        return value
    return value[:limit - 3] + "..."


def _first_section_items(content: Optional[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
    if not content:
        return None
    sections = (content.get("expanded") or {}).get("sections")
    if not sections:
        return None
    return sections[0].setdefault("items", [])


class DashboardController:
    def __init__(self, width: int = DEFAULT_DISPLAY_WIDTH, height: int = DEFAULT_DISPLAY_HEIGHT):
        self.width = width
        self.height = height

    def build_initial_content(self, started_at: Optional[str] = None) -> Dict[str, Any]:
        started_at = started_at or datetime.now(timezone.utc).isoformat()
        return {
            "main": {
                "title": STATUS_TITLE,
                "value": "Connected",
                "color": STATUS_OK_COLOR,
            },
            "expanded": {
                "sections": [
                    {
                        "title": "OLED Display",
                        "items": [
                            {"label": "Status", "value": "Connected"},
                            {"label": "Display Size", "value": f"{self.width}x{self.height}"},
                            {"label": "Interface", "value": "Serial"},
                            {"label": "Model", "value": DISPLAY_MODEL},
                            {"label": "Controller", "value": DISPLAY_DRIVER},
                            {"label": "Connected Since", "value": started_at},
                        ],
                    },
                    {
                        "title": "Available Commands",
                        "items": [
                            {"label": "Text", "value": "Display text messages"},
                            {"label": "Weather", "value": "Show weather data with symbols"},
                            {"label": "Directions", "value": "Display directional arrows"},
                            {"label": "Time", "value": "Show current time"},
                        ],
                    },
                ],
            },
        }

    async def initialize(self, session: Session) -> None:
        try:
            logger.info("Initializing dashboard content")
            await session.dashboard.set_content(self.build_initial_content())
            logger.info("Dashboard content set successfully")
        except Exception as e:
            logger.error("Failed to set dashboard content: %s", e)

    async def update_status(self, session: Session, status: str, color: str = STATUS_OK_COLOR) -> None:
        try:
            await session.dashboard.update_content({
                "main": {"title": STATUS_TITLE, "value": status, "color": color},
            })

            content = await session.dashboard.get_content()
            items = _first_section_items(content)
            if items:
                items[0]["value"] = status
                await session.dashboard.update_content({"expanded": content["expanded"]})

            logger.info("Dashboard status updated: %s", status)
        except Exception as e:
            logger.error("Failed to update dashboard status: %s", e)

    async def update_display_content(self, session: Session, content: str) -> None:
        """Record ``content`` as the "Last Displayed" item, if the dashboard exists."""
        try:
            current = await session.dashboard.get_content()
            items = _first_section_items(current)
            if items is None:
                return

            value = truncate_item(content)
            for item in items:
                if item.get("label") == LAST_DISPLAYED_LABEL:
                    item["value"] = value
                    break
            else:
                items.append({"label": LAST_DISPLAYED_LABEL, "value": value})

            await session.dashboard.update_content({"expanded": current["expanded"]})
            logger.debug("Dashboard display content updated")
        except Exception as e:
            logger.error("Failed to update dashboard display content: %s", e)

    async def clear(self, session: Session) -> None:
        try:
            logger.info("Clearing dashboard content")
            await session.dashboard.clear_content()
        except Exception as e:
            logger.error("Failed to clear dashboard content: %s", e)
