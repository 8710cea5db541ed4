"""Read-only fleet data resolved at trip start: routes, stops, vans."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Stop:
    id: str
    name: str
    lat: float
    lng: float


@dataclass(frozen=True)
class Route:
    id: str
    name: str
    stops: tuple[Stop, ...] = ()  # traversal order


@dataclass(frozen=True)
class Van:
    id: str
    van_number: str
    capacity: int | None = None
    route_id: str | None = None


@dataclass
class Assignment:
    """A driver's van and the route that van is assigned to."""

    driver_id: str
    van: Van
    route: Route
    driver_name: str = ""
