from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vantrack.core.session_state import ArrivalStatus


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class GeoPoint(CamelModel):
    lat: float
    lng: float


class LocationRecord(CamelModel):
    bus_id: str
    lat: float
    lng: float
    speed: float = 0.0  # m/s
    route_id: str
    van_id: str | None = None
    next_stop_id: str | None = None
    next_stop_name: str | None = None
    arrival_status: ArrivalStatus | None = None
    updated_at: int  # epoch ms
    is_online: bool
