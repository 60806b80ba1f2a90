"""Unit tests for DashboardController."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from oled_bridge.dashboard import DashboardController, truncate_item


def _items(session):
    return session.dashboard.content["expanded"]["sections"][0]["items"]


class TestTruncate:
    def test_short_values_unchanged(self):
        assert truncate_item("Weather demo") == "Weather demo"
        assert truncate_item("x" * 20) == "x" * 20

    def test_long_values_cut_to_seventeen_plus_ellipsis(self):
        value = truncate_item("Weather forecast displayed")
        assert value == "Weather forecast ..."
        assert len(value) == 20


class TestDashboardController:
    @pytest.mark.asyncio
    async def test_initialize_sets_content(self, local_session):
        await DashboardController(128, 56).initialize(local_session)

        content = local_session.dashboard.content
        assert content["main"] == {"title": "OLED Status", "value": "Connected", "color": "#00ff00"}
        sections = content["expanded"]["sections"]
        assert [s["title"] for s in sections] == ["OLED Display", "Available Commands"]
        assert {"label": "Display Size", "value": "128x56"} in sections[0]["items"]

    @pytest.mark.asyncio
    async def test_update_display_content_adds_then_updates(self, local_session):
        dashboard = DashboardController()
        await dashboard.initialize(local_session)

        await dashboard.update_display_content(local_session, "Logo")
        await dashboard.update_display_content(local_session, "A very long piece of displayed text")

        last = [i for i in _items(local_session) if i["label"] == "Last Displayed"]
        assert last == [{"label": "Last Displayed", "value": "A very long piece..."}]

    @pytest.mark.asyncio
    async def test_update_display_content_without_dashboard_is_noop(self, local_session):
        await DashboardController().update_display_content(local_session, "Logo")
        assert local_session.dashboard.content is None

    @pytest.mark.asyncio
    async def test_update_status(self, local_session):
        dashboard = DashboardController()
        await dashboard.initialize(local_session)

        await dashboard.update_status(local_session, "Reconnecting", "#ffaa00")

        assert local_session.dashboard.content["main"]["value"] == "Reconnecting"
        assert local_session.dashboard.content["main"]["color"] == "#ffaa00"
        assert _items(local_session)[0] == {"label": "Status", "value": "Reconnecting"}

    @pytest.mark.asyncio
    async def test_clear(self, local_session):
        dashboard = DashboardController()
        await dashboard.initialize(local_session)
        await dashboard.clear(local_session)
        assert local_session.dashboard.content is None

    @pytest.mark.asyncio
    async def test_errors_are_swallowed(self):
        session = MagicMock()
        session.dashboard.set_content = AsyncMock(side_effect=RuntimeError("offline"))
        session.dashboard.get_content = AsyncMock(side_effect=RuntimeError("offline"))
        session.dashboard.update_content = AsyncMock(side_effect=RuntimeError("offline"))
        session.dashboard.clear_content = AsyncMock(side_effect=RuntimeError("offline"))
        dashboard = DashboardController()

        await dashboard.initialize(session)
        await dashboard.update_status(session, "Connected")
        await dashboard.update_display_content(session, "Logo")
        await dashboard.clear(session)
