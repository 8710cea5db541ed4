"""Trip progress state machine over the route's ordered stop list.

The target stop is ``stops[current_stop_index]``. Arrival status is derived
from proximity to that stop on every sample:

    en_route  -- farther than the arrival radius
    arriving  -- within the arrival radius
    arrived   -- confirmed by the driver; the next sample re-derives it

There is no hysteresis, so a vehicle hovering at the radius boundary can
flip between en_route and arriving from one sample to the next. The index
only moves forward, one stop per departure.
"""

import logging
from dataclasses import dataclass

from vantrack.core.fleet import Route, Stop
from vantrack.core.geo import haversine_m
from vantrack.core.session_state import ArrivalStatus, PositionSample, SessionState

logger = logging.getLogger(__name__)

ARRIVAL_RADIUS_M = 100.0


@dataclass
class TripProgress:
    route_id: str
    van_id: str
    next_stop_id: str | None
    next_stop_name: str | None
    arrival_status: ArrivalStatus


class TripProgressEngine:
    def __init__(
        self,
        state: SessionState,
        route: Route,
        arrival_radius_m: float = ARRIVAL_RADIUS_M,
    ) -> None:
        self.state = state
        self.route = route
        self.arrival_radius_m = arrival_radius_m

    @property
    def stops(self) -> tuple[Stop, ...]:
        return self.route.stops

    @property
    def current_stop(self) -> Stop | None:
        idx = self.state.current_stop_index
        if 0 <= idx < len(self.stops):
            return self.stops[idx]
        return None

    @property
    def at_last_stop(self) -> bool:
        return self.state.current_stop_index >= len(self.stops) - 1

    def reset(self) -> None:
        self.state.current_stop_index = 0
        self.state.arrival_status = ArrivalStatus.EN_ROUTE
        self.state.distance_to_stop_m = None

    def update(self, sample: PositionSample) -> ArrivalStatus:
        """Re-derive arrival status from the sample's distance to the target stop."""
        stop = self.current_stop
        if stop is None:
            return self.state.arrival_status

        dist = haversine_m(sample.lat, sample.lng, stop.lat, stop.lng)
        self.state.distance_to_stop_m = dist

        status = ArrivalStatus.ARRIVING if dist < self.arrival_radius_m else ArrivalStatus.EN_ROUTE
        if status is not self.state.arrival_status:
            logger.debug(
                "Bus %s: %s -> %s for stop %s (%.0fm)",
                self.state.bus_id, self.state.arrival_status.value, status.value, stop.id, dist,
            )
        self.state.arrival_status = status
        return status

    def mark_arrived(self) -> None:
        """Driver confirmed arrival at the current stop."""
        self.state.arrival_status = ArrivalStatus.ARRIVED

    def depart(self) -> bool:
        """Advance to the next stop.

        Returns False when already at the last stop: the trip is over and the
        caller must end it.
        """
        if self.at_last_stop:
            return False
        self.state.current_stop_index += 1
        self.state.arrival_status = ArrivalStatus.EN_ROUTE
        self.state.distance_to_stop_m = None
        stop = self.current_stop
        logger.info(
            "Bus %s departed, next stop %d/%d: %s",
            self.state.bus_id, self.state.current_stop_index + 1, len(self.stops), stop.name,
        )
        return True

    def snapshot(self) -> TripProgress:
        stop = self.current_stop
        return TripProgress(
            route_id=self.state.route_id,
            van_id=self.state.van_id,
            next_stop_id=stop.id if stop else None,
            next_stop_name=stop.name if stop else None,
            arrival_status=self.state.arrival_status,
        )
