"""Shared test helpers: a controllable clock and a small route near Bengaluru."""

import math

from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.errors import AssignmentError, BroadcastWriteError
from vantrack.core.fleet import Assignment, Route, Stop, Van
from vantrack.core.geo import EARTH_RADIUS_M
from vantrack.core.session_state import PositionSample

BASE_LAT = 12.9716
BASE_LNG = 77.5946


class FakeClock:
    def __init__(self, start: float = 1_760_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def north_of(lat: float, meters: float) -> float:
    """Latitude `meters` north of `lat` along the meridian (exact for haversine)."""
    return lat + math.degrees(meters / EARTH_RADIUS_M)


def sample_at(meters_north: float, lng: float = BASE_LNG, speed: float = 0.0, ts: float = 0.0) -> PositionSample:
    return PositionSample(lat=north_of(BASE_LAT, meters_north), lng=lng, speed=speed, timestamp=ts)


def make_route(n_stops: int = 3, spacing_m: float = 1000.0) -> Route:
    """Stops spaced along a north-south line, first stop at the base point."""
    stops = tuple(
        Stop(id=f"s{i + 1}", name=f"Stop {chr(ord('A') + i)}",
             lat=north_of(BASE_LAT, i * spacing_m), lng=BASE_LNG)
        for i in range(n_stops)
    )
    return Route(id="r1", name="Morning Route", stops=stops)


def make_assignment(driver_id: str = "d1", route: Route | None = None) -> Assignment:
    route = route or make_route()
    van = Van(id="v1", van_number="KA-01-1234", capacity=20, route_id=route.id)
    return Assignment(driver_id=driver_id, van=van, route=route, driver_name="Driver One")


class StubRepository:
    """Assignment source keyed by driver id; unknown drivers have no van."""

    def __init__(self, assignments: dict[str, Assignment] | None = None) -> None:
        self.assignments = assignments or {}

    async def get_assignment(self, driver_id: str) -> Assignment:
        try:
            return self.assignments[driver_id]
        except KeyError:
            raise AssignmentError("No van is assigned to you. Contact an admin.")


class RecordingStore(FleetBroadcastStore):
    """In-memory store that records every write and can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, dict]] = []
        self.fail = False

    async def write(self, path: str, record: dict) -> None:
        if self.fail:
            raise BroadcastWriteError(f"{path}: store unavailable")
        self.writes.append((path, record))
        await super().write(path, record)

    def writes_to(self, keyspace: str) -> list[dict]:
        return [r for p, r in self.writes if p.startswith(keyspace + "/")]
