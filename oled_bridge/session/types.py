"""Interfaces of the wearable session the bridge talks to."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

DashboardContent = Dict[str, Any]


@runtime_checkable
class Layouts(Protocol):
    """What the glasses can render for the user."""

    async def show_text_wall(self, text: str, duration_ms: Optional[int] = None) -> None:
        ...

    async def show_reference_card(
        self,
        title: str,
        text: str,
        duration_ms: Optional[int] = None,
    ) -> None:
        ...


@runtime_checkable
class DashboardAPI(Protocol):
    """Dashboard document of a session.

    ``get_content`` returns the live document; callers may mutate it in
    place and hand the changed part back through ``update_content``.
    """

    async def get_content(self) -> Optional[DashboardContent]:
        ...

    async def set_content(self, content: DashboardContent) -> None:
        ...

    async def update_content(self, content: DashboardContent) -> None:
        ...

    async def clear_content(self) -> None:
        ...


@runtime_checkable
class Session(Protocol):
    session_id: str
    user_id: str
    layouts: Layouts
    dashboard: DashboardAPI


__all__ = ["DashboardAPI", "DashboardContent", "Layouts", "Session"]
