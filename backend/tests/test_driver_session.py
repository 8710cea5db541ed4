"""Tests for DriverSession lifecycle and SessionManager."""

import asyncio

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from vantrack.core.driver_session import DriverSession
from vantrack.core.errors import (
    AssignmentError,
    SensorError,
    TripAlreadyActiveError,
    TripNotActiveError,
)
from vantrack.core.scheduler import publish_job_id, watchdog_job_id
from vantrack.core.session_manager import SessionManager
from vantrack.core.session_state import ArrivalStatus

from support import FakeClock, RecordingStore, StubRepository, make_assignment, make_route, north_of, BASE_LAT


def make_session(clock=None, store=None, n_stops=3):
    clock = clock or FakeClock()
    store = store or RecordingStore()
    scheduler = AsyncIOScheduler()
    session = DriverSession(make_assignment(route=make_route(n_stops)), store, scheduler, clock)
    return session, store, scheduler, clock


def fix(meters_north: float, speed: float = 0.0) -> dict:
    return {"coords": {"latitude": north_of(BASE_LAT, meters_north), "longitude": 77.5946, "speed": speed}}


def test_start_schedules_both_jobs():
    session, store, scheduler, _ = make_session()
    session.start()
    assert session.is_active
    assert scheduler.get_job(publish_job_id("d1")) is not None
    assert scheduler.get_job(watchdog_job_id("d1")) is not None
    assert session.state.current_stop_index == 0


def test_samples_flow_to_trackers():
    session, store, _, clock = make_session()
    session.start()
    session.sampler.feed(fix(50, speed=2.0))

    status = session.status()
    assert status.arrival_status is ArrivalStatus.ARRIVING
    assert status.position is not None
    assert status.next_stop_id == "s1"

    asyncio.run(session.publisher.tick())
    assert store.get("locations/d1")["arrivalStatus"] == "arriving"


def test_sensor_error_then_recovery():
    session, store, _, _ = make_session()
    session.start()
    session.sampler.feed(fix(500))
    session.sampler.report_error(SensorError(SensorError.PERMISSION_DENIED, "User denied Geolocation"))

    assert session.status().sensor_error.code == 1
    assert asyncio.run(session.publisher.tick()) is None

    session.sampler.feed(fix(480))
    assert session.status().sensor_error is None
    assert asyncio.run(session.publisher.tick()) is not None


def test_depart_at_final_stop_ends_trip():
    session, store, scheduler, _ = make_session(n_stops=2)
    session.start()
    session.sampler.feed(fix(10))
    asyncio.run(session.publisher.tick())

    assert asyncio.run(session.depart_next()) is True
    assert session.state.current_stop_index == 1
    assert asyncio.run(session.depart_next()) is False

    assert session.state.is_driving is False
    assert session.state.current_stop_index == 0
    last = store.writes_to("locations")[-1]
    assert last["isOnline"] is False
    assert (last["lat"], last["lng"]) == (0.0, 0.0)
    assert last["routeId"] == ""
    assert scheduler.get_job(publish_job_id("d1")) is None
    assert scheduler.get_job(watchdog_job_id("d1")) is None


def test_nothing_written_after_end():
    session, store, scheduler, clock = make_session()
    session.start()
    session.sampler.feed(fix(0))
    asyncio.run(session.publisher.tick())
    asyncio.run(session.end())
    writes_at_end = len(store.writes)
    assert store.writes[-1][1]["isOnline"] is False

    # Late samples, ticks and checks long after the end change nothing
    for _ in range(100):
        clock.advance(60)
        session.sampler.feed(fix(0))
        asyncio.run(session.publisher.tick())
        asyncio.run(session.watchdog.check())

    assert len(store.writes) == writes_at_end
    assert scheduler.get_jobs() == []


class SlowStore(RecordingStore):
    """Store whose writes take a moment to land."""

    async def write(self, path: str, record: dict) -> None:
        await asyncio.sleep(0.01)
        await super().write(path, record)


def test_end_waits_for_in_flight_tick():
    session, store, _, _ = make_session(store=SlowStore())
    session.start()
    session.sampler.feed(fix(0))

    async def tick_then_end():
        tick = asyncio.create_task(session.publisher.tick())
        await asyncio.sleep(0)  # tick now holds the publisher lock mid-write
        await session.end()
        return await tick

    published = asyncio.run(tick_then_end())

    assert published is not None and published.is_online
    online = [r["isOnline"] for r in store.writes_to("locations")]
    assert online == [True, False]


def test_end_is_idempotent():
    session, store, _, _ = make_session()
    session.start()
    asyncio.run(session.end())
    asyncio.run(session.end())
    assert len(store.writes_to("locations")) == 1


def test_offline_write_failure_still_ends_trip():
    session, store, scheduler, _ = make_session()
    session.start()
    store.fail = True
    asyncio.run(session.end())
    assert not session.is_active
    assert scheduler.get_jobs() == []
    assert session.publisher.failed == 1


def make_manager(clock=None):
    clock = clock or FakeClock()
    store = RecordingStore()
    repo = StubRepository({"d1": make_assignment("d1"), "d2": make_assignment("d2")})
    return SessionManager(repo, store, AsyncIOScheduler(), clock), store


def test_manager_refuses_missing_assignment():
    manager, store = make_manager()
    with pytest.raises(AssignmentError):
        asyncio.run(manager.start_trip("nobody"))
    assert manager.find("nobody") is None
    assert store.writes == []


def test_manager_one_trip_per_driver():
    manager, _ = make_manager()
    asyncio.run(manager.start_trip("d1"))
    with pytest.raises(TripAlreadyActiveError):
        asyncio.run(manager.start_trip("d1"))
    asyncio.run(manager.start_trip("d2"))
    assert manager.get_diagnostics()["active_sessions"] == 2


class SlowRepository(StubRepository):
    async def get_assignment(self, driver_id):
        await asyncio.sleep(0.01)
        return await super().get_assignment(driver_id)


def test_manager_concurrent_starts_create_one_session():
    store = RecordingStore()
    repo = SlowRepository({"d1": make_assignment("d1")})
    manager = SessionManager(repo, store, AsyncIOScheduler(), FakeClock())

    async def start_twice():
        return await asyncio.gather(
            manager.start_trip("d1"), manager.start_trip("d1"), return_exceptions=True,
        )

    results = asyncio.run(start_twice())
    started = [r for r in results if isinstance(r, DriverSession)]
    refused = [r for r in results if isinstance(r, TripAlreadyActiveError)]
    assert len(started) == 1 and len(refused) == 1
    assert manager.sessions["d1"] is started[0]

    asyncio.run(manager.end_trip("d1"))
    assert not started[0].is_active
    assert manager.sessions == {}


def test_manager_trip_lifecycle():
    manager, store = make_manager()
    asyncio.run(manager.start_trip("d1"))
    manager.mark_arrived("d1")
    assert manager.get("d1").state.arrival_status is ArrivalStatus.ARRIVED

    for _ in range(2):
        asyncio.run(manager.depart_next("d1"))
    assert manager.get("d1").state.current_stop_index == 2

    session = asyncio.run(manager.depart_next("d1"))
    assert not session.is_active
    with pytest.raises(TripNotActiveError):
        manager.get("d1")

    # The driver can start again from the first stop
    again = asyncio.run(manager.start_trip("d1"))
    assert again.state.current_stop_index == 0


def test_manager_end_unknown_trip():
    manager, _ = make_manager()
    with pytest.raises(TripNotActiveError):
        asyncio.run(manager.end_trip("d1"))


def test_manager_shutdown_takes_everyone_offline():
    manager, store = make_manager()
    asyncio.run(manager.start_trip("d1"))
    asyncio.run(manager.start_trip("d2"))
    asyncio.run(manager.shutdown())
    offline = {r["busId"] for r in store.writes_to("locations") if not r["isOnline"]}
    assert offline == {"d1", "d2"}
    assert manager.sessions == {}
