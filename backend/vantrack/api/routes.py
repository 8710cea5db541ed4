"""Route REST API endpoints (read-only)."""

from fastapi import APIRouter, HTTPException

from vantrack.schemas.route import RouteDetail, RouteInfo, RouteStopInfo

router = APIRouter(prefix="/api/routes", tags=["routes"])

# Will be set by main.py
repository = None


@router.get("", response_model=list[RouteInfo])
async def list_routes():
    """Get all routes."""
    if repository is None:
        return []
    routes = await repository.list_routes()
    return [RouteInfo(id=r.id, name=r.name, stop_count=len(r.stops)) for r in routes]


@router.get("/{route_id}", response_model=RouteDetail)
async def get_route(route_id: str):
    """Get route detail with stops in traversal order."""
    route = await repository.get_route(route_id) if repository else None
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")
    return RouteDetail(
        id=route.id,
        name=route.name,
        stops=[
            RouteStopInfo(id=s.id, name=s.name, lat=s.lat, lng=s.lng, order=i)
            for i, s in enumerate(route.stops)
        ],
    )
