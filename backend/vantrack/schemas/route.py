from pydantic import BaseModel


class RouteInfo(BaseModel):
    id: str
    name: str
    stop_count: int = 0


class RouteStopInfo(BaseModel):
    id: str
    name: str
    lat: float
    lng: float
    order: int


class RouteDetail(BaseModel):
    id: str
    name: str
    stops: list[RouteStopInfo] = []
