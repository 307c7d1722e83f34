"""
test_dashboard.py — SafetyDashboard wiring and the process-wide holder.
"""

import asyncio

import pytest

from safewatch.models.incident import Incident
from safewatch.services import dashboard as dashboard_module
from safewatch.services.dashboard import SafetyDashboard, close_dashboard, dashboard_holder, open_dashboard
from safewatch.services.location import DevicePositionFeed


@pytest.fixture()
async def dashboard(backend, geocoder):
    dashboard = SafetyDashboard(backend, geocoder, DevicePositionFeed(), poll_interval=0.01, geolocation_timeout=0.05)
    yield dashboard
    await dashboard.stop()


class TestSafetyDashboard:
    @pytest.mark.asyncio
    async def test_submit_report_injects_on_success(self, dashboard):
        result = await dashboard.submit_report({"occurrence_type": "Furto"})
        assert isinstance(result, Incident)
        assert dashboard.snapshot().incidents == [result]

    @pytest.mark.asyncio
    async def test_failed_submit_is_not_injected(self, dashboard, upstream):
        upstream.create_status = 500
        await dashboard.submit_report({"occurrence_type": "Furto"})
        assert dashboard.snapshot().incidents == []

    @pytest.mark.asyncio
    async def test_position_hidden_while_inactive(self, dashboard):
        await dashboard.set_protection(True)
        await dashboard.tracker.settle()
        assert dashboard.snapshot().user_position is not None

        await dashboard.set_protection(False)
        snapshot = dashboard.snapshot()
        assert snapshot.user_position is None
        assert snapshot.session_risk is None

    @pytest.mark.asyncio
    async def test_quick_off_on_starts_a_fresh_session(self, dashboard, upstream):
        await dashboard.set_protection(True)
        await dashboard.tracker.settle()

        await asyncio.gather(dashboard.set_protection(False), dashboard.set_protection(True))
        await dashboard.tracker.settle()

        assert dashboard.protection_active
        assert upstream.count("/risco-bairro") == 2
        assert dashboard.tracker.position is not None
        assert dashboard.snapshot().session_risk is not None

    @pytest.mark.asyncio
    async def test_set_protection_is_idempotent(self, dashboard, upstream):
        await dashboard.set_protection(True)
        await dashboard.set_protection(True)
        await dashboard.tracker.settle()
        assert upstream.count("/risco-bairro") == 1

    @pytest.mark.asyncio
    async def test_stop_twice(self, dashboard):
        dashboard.start()
        await dashboard.stop()
        await dashboard.stop()
        assert not dashboard.feed.running
        assert not dashboard.protection_active

    @pytest.mark.asyncio
    async def test_push_without_device_feed(self, backend, geocoder):
        dashboard = SafetyDashboard(backend, geocoder, None)
        assert dashboard.push_position_error("denied") is False


class TestHolder:
    @pytest.mark.asyncio
    async def test_open_and_close(self, monkeypatch):
        monkeypatch.setattr(dashboard_module.settings, "poll_interval_seconds", 3600)
        monkeypatch.setattr(dashboard_module.settings, "backend_url", "http://127.0.0.1:9")

        dashboard = await open_dashboard()
        assert dashboard_holder.dashboard is dashboard
        assert dashboard.feed.running

        await close_dashboard()
        assert dashboard_holder.dashboard is None
        assert dashboard_holder.client is None
        assert not dashboard.feed.running
