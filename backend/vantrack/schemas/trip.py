from pydantic import BaseModel

from vantrack.core.session_state import ArrivalStatus
from vantrack.schemas.location import GeoPoint


class SensorErrorInfo(BaseModel):
    code: int
    message: str


class TripStatus(BaseModel):
    driver_id: str
    route_id: str
    route_name: str
    van_id: str
    van_number: str
    is_driving: bool
    current_stop_index: int
    stop_count: int
    next_stop_id: str | None = None
    next_stop_name: str | None = None
    arrival_status: ArrivalStatus
    distance_to_stop_m: float | None = None
    position: GeoPoint | None = None
    stall_seconds: float = 0.0
    sensor_error: SensorErrorInfo | None = None
