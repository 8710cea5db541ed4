"""Tests for LocationPublisher."""

import asyncio

from vantrack.core.errors import SensorError
from vantrack.core.movement_tracker import MovementTracker
from vantrack.core.publisher import LocationPublisher
from vantrack.core.session_state import SessionState
from vantrack.core.trip_progress import TripProgressEngine

from support import FakeClock, RecordingStore, make_route, sample_at


def make_publisher(clock: FakeClock, store: RecordingStore):
    route = make_route()
    state = SessionState(bus_id="d1", route_id=route.id, van_id="v1", is_driving=True)
    movement = MovementTracker(state, clock)
    progress = TripProgressEngine(state, route)
    movement.reset()
    progress.reset()
    return LocationPublisher(state, progress, store, clock), movement, progress


def feed(movement, progress, sample):
    movement.update(sample)
    progress.update(sample)


def test_nothing_published_before_first_sample():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)

    for _ in range(5):
        clock.advance(1)
        assert asyncio.run(publisher.tick()) is None
    assert store.writes == []

    feed(movement, progress, sample_at(300, speed=8.0))
    record = asyncio.run(publisher.tick())
    assert record is not None
    assert len(store.writes) == 1


def test_record_contents():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    feed(movement, progress, sample_at(60, speed=3.5))

    asyncio.run(publisher.tick())

    path, record = store.writes[0]
    assert path == "locations/d1"
    assert record["busId"] == "d1"
    assert record["routeId"] == "r1"
    assert record["vanId"] == "v1"
    assert record["speed"] == 3.5
    assert record["nextStopId"] == "s1"
    assert record["nextStopName"] == "Stop A"
    assert record["arrivalStatus"] == "arriving"
    assert record["isOnline"] is True
    assert record["updatedAt"] == int(clock.now * 1000)


def test_one_write_per_tick_regardless_of_sample_rate():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    for i in range(50):
        feed(movement, progress, sample_at(i))
    asyncio.run(publisher.tick())
    assert len(store.writes) == 1
    # Latest sample wins
    assert store.get("locations/d1")["lat"] == sample_at(49).lat


def test_sensor_error_pauses_publishing():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    feed(movement, progress, sample_at(0))
    publisher.state.sensor_error = SensorError(SensorError.POSITION_UNAVAILABLE)

    assert asyncio.run(publisher.tick()) is None
    assert store.writes == []

    publisher.state.sensor_error = None
    assert asyncio.run(publisher.tick()) is not None


def test_failed_write_superseded_by_next_tick():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    feed(movement, progress, sample_at(0))

    store.fail = True
    assert asyncio.run(publisher.tick()) is None
    assert publisher.failed == 1

    store.fail = False
    clock.advance(1)
    assert asyncio.run(publisher.tick()) is not None
    assert publisher.published == 1
    assert publisher.last_published_at == clock.now


def test_offline_record():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    feed(movement, progress, sample_at(500, speed=10))
    asyncio.run(publisher.tick())

    publisher.state.is_driving = False
    asyncio.run(publisher.publish_offline())

    record = store.get("locations/d1")
    assert record["isOnline"] is False
    assert record["lat"] == 0.0
    assert record["lng"] == 0.0
    assert record["routeId"] == ""
    assert record["speed"] == 0.0


def test_no_tick_when_not_driving():
    clock, store = FakeClock(), RecordingStore()
    publisher, movement, progress = make_publisher(clock, store)
    feed(movement, progress, sample_at(0))
    publisher.state.is_driving = False
    assert asyncio.run(publisher.tick()) is None
    assert store.writes == []
