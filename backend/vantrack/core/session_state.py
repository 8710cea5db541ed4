"""Mutable state of one driver's trip, shared by the sample path and the periodic jobs."""

import enum
from dataclasses import dataclass

from vantrack.core.errors import SensorError


class ArrivalStatus(str, enum.Enum):
    EN_ROUTE = "en_route"
    ARRIVING = "arriving"
    ARRIVED = "arrived"


@dataclass
class PositionSample:
    lat: float
    lng: float
    speed: float  # m/s
    timestamp: float  # epoch seconds


@dataclass
class SessionState:
    """Single-writer registers for one trip.

    Every field is written by exactly one component and read by the others;
    no cross-field atomicity is needed.
    """

    bus_id: str
    route_id: str
    van_id: str
    is_driving: bool = False
    started_at: float = 0.0

    # TripProgressEngine
    current_stop_index: int = 0
    arrival_status: ArrivalStatus = ArrivalStatus.EN_ROUTE
    distance_to_stop_m: float | None = None

    # MovementTracker
    position: PositionSample | None = None
    last_movement_time: float = 0.0

    # StoppageWatchdog (cleared by MovementTracker)
    stoppage_alerted: bool = False

    # GeoSampler error path
    sensor_error: SensorError | None = None
