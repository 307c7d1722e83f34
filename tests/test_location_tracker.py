"""
test_location_tracker.py — LocationTracker state machine and DevicePositionFeed.

The device is simulated with DevicePositionFeed: tests publish fixes the
way the front-end would through POST /api/v1/location.
"""

import asyncio

import pytest

from safewatch.core.errors import LocationUnavailable
from safewatch.models.common import Coordinate
from safewatch.services.location import DevicePositionFeed, LocationTracker, TrackerState
from safewatch.services.risk_lookup import RiskLookupController

FIX = Coordinate(lat=-15.8344, lng=-48.0262)


async def eventually(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture()
def device():
    return DevicePositionFeed()


@pytest.fixture()
def risk(backend, geocoder, clock):
    return RiskLookupController(backend, geocoder, clock=clock)


@pytest.fixture()
async def tracker(device, risk):
    tracker = LocationTracker(device, risk, timeout=0.2, retry_delay=0.01)
    yield tracker
    await tracker.deactivate()


class TestActivation:
    @pytest.mark.asyncio
    async def test_initial_fix_feeds_risk_lookup(self, tracker, device, risk, upstream):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)

        device.publish(FIX)
        await tracker.settle()

        assert tracker.state == TrackerState.TRACKING
        assert tracker.position == FIX
        assert upstream.count("/risco-bairro") == 1
        assert risk.state.coordinate == FIX

    @pytest.mark.asyncio
    async def test_continuous_updates_never_query_risk(self, tracker, device, upstream):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.publish(FIX)
        await tracker.settle()

        updates = [Coordinate(lat=-15.80 - i / 100, lng=-47.90) for i in range(5)]
        for update in updates:
            device.publish(update)
        await eventually(lambda: tracker.position == updates[-1])

        assert upstream.count("/risco-bairro") == 1

    @pytest.mark.asyncio
    async def test_initial_timeout_uses_fallback(self, tracker, risk, upstream, fallback):
        await tracker.activate()
        await tracker.settle()

        assert (tracker.position.lat, tracker.position.lng) == fallback
        assert upstream.count("/risco-bairro") == 1
        assert risk.state.coordinate.lat == fallback[0]
        assert upstream.last("/reverse").url.params["lat"] == str(fallback[0])

    @pytest.mark.asyncio
    async def test_device_error_uses_fallback(self, tracker, device, risk, fallback):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.fail("permission denied")
        await tracker.settle()

        assert risk.state is not None
        assert (risk.state.coordinate.lat, risk.state.coordinate.lng) == fallback

    @pytest.mark.asyncio
    async def test_no_initial_fix_when_session_has_risk(self, tracker, device, risk, upstream):
        await risk.lookup_once(FIX)
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 1)

        device.publish(Coordinate(lat=-15.7, lng=-47.8))
        await eventually(lambda: tracker.position is not None)
        assert upstream.count("/risco-bairro") == 1

    @pytest.mark.asyncio
    async def test_activate_twice_is_a_noop(self, tracker, device, upstream):
        await tracker.activate()
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.publish(FIX)
        await tracker.settle()
        assert upstream.count("/risco-bairro") == 1

    @pytest.mark.asyncio
    async def test_watch_error_shows_fallback_then_recovers(self, tracker, device, fallback):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.publish(FIX)
        await tracker.settle()

        device.fail("position unavailable")
        await eventually(lambda: tracker.position is not None and tracker.position.lat == fallback[0])

        await eventually(lambda: device.subscriber_count == 1)
        recovered = Coordinate(lat=-15.9, lng=-48.1)
        device.publish(recovered)
        await eventually(lambda: tracker.position == recovered)


class TestDeactivation:
    @pytest.mark.asyncio
    async def test_clears_position_and_risk(self, tracker, device, risk):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.publish(FIX)
        await tracker.settle()

        await tracker.deactivate()

        assert tracker.state == TrackerState.IDLE
        assert tracker.position is None
        assert not risk.fetched_once
        assert device.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_cancels_pending_initial_fix(self, tracker, device, risk, upstream):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        await tracker.deactivate()

        device.publish(FIX)
        await asyncio.sleep(0.01)
        assert tracker.position is None
        assert risk.state is None
        assert upstream.count("/risco-bairro") == 0

    @pytest.mark.asyncio
    async def test_reactivation_queries_again(self, tracker, device, upstream):
        for _ in range(2):
            await tracker.activate()
            await eventually(lambda: device.subscriber_count == 2)
            device.publish(FIX)
            await tracker.settle()
            await tracker.deactivate()

        assert upstream.count("/risco-bairro") == 2

    @pytest.mark.asyncio
    async def test_reactivation_racing_deactivation_queries_again(self, tracker, device, risk, upstream):
        await tracker.activate()
        await eventually(lambda: device.subscriber_count == 2)
        device.publish(FIX)
        await tracker.settle()

        await asyncio.gather(tracker.deactivate(), tracker.activate())
        assert tracker.state == TrackerState.TRACKING

        await eventually(lambda: device.subscriber_count == 2)
        fresh = Coordinate(lat=-15.9, lng=-48.1)
        device.publish(fresh)
        await tracker.settle()

        assert upstream.count("/risco-bairro") == 2
        assert tracker.position == fresh
        assert risk.state.coordinate == fresh

    @pytest.mark.asyncio
    async def test_deactivate_when_idle(self, tracker, risk):
        await tracker.deactivate()
        assert tracker.state == TrackerState.IDLE


class TestWithoutCapability:
    @pytest.mark.asyncio
    async def test_single_fallback_lookup_per_session(self, risk, upstream, fallback):
        tracker = LocationTracker(None, risk, timeout=0.2)
        await tracker.activate()
        await tracker.settle()

        assert tracker.state == TrackerState.IDLE
        assert tracker.position is None
        assert (risk.state.coordinate.lat, risk.state.coordinate.lng) == fallback

        await tracker.activate()
        await tracker.settle()
        assert upstream.count("/risco-bairro") == 1

        await tracker.deactivate()
        await tracker.activate()
        await tracker.settle()
        assert upstream.count("/risco-bairro") == 2
        await tracker.deactivate()


class TestDevicePositionFeed:
    @pytest.mark.asyncio
    async def test_current_position_waits_for_fresh_fix(self, device):
        device.publish(FIX)  # nobody listening: dropped, never cached
        task = asyncio.create_task(device.current_position(timeout=1.0))
        await eventually(lambda: device.subscriber_count == 1)
        fresh = Coordinate(lat=-15.0, lng=-47.0)
        device.publish(fresh)
        assert await task == fresh
        assert device.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_current_position_timeout(self, device):
        with pytest.raises(LocationUnavailable):
            await device.current_position(timeout=0.01)
        assert device.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_watch_raises_on_failure(self, device):
        async def consume():
            async for _ in device.watch(timeout=1.0):
                pass

        task = asyncio.create_task(consume())
        await eventually(lambda: device.subscriber_count == 1)
        device.fail("denied")
        with pytest.raises(LocationUnavailable):
            await task
