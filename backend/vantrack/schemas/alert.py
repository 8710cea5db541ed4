from vantrack.schemas.location import CamelModel, GeoPoint


class StoppageAlert(CamelModel):
    id: str
    bus_id: str
    van_id: str
    route_id: str
    location: GeoPoint | None = None
    start_time: int  # epoch ms, last significant movement
    detected_at: int  # epoch ms
    message: str
    is_resolved: bool = False
