"""Live location read endpoints."""

from fastapi import APIRouter

from vantrack.schemas.location import LocationRecord

router = APIRouter(prefix="/api/locations", tags=["locations"])

# Will be set by main.py
store = None


def filter_locations(
    records: list[dict],
    route_id: str | None = None,
    van_id: str | None = None,
    online: bool | None = None,
) -> list[dict]:
    result = []
    for r in records:
        if online is not None and bool(r.get("isOnline")) != online:
            continue
        if route_id and r.get("routeId") != route_id:
            continue
        if van_id and r.get("vanId") != van_id:
            continue
        result.append(r)
    return result


@router.get("", response_model=list[LocationRecord])
async def list_locations(
    route_id: str | None = None,
    van_id: str | None = None,
    online: bool | None = True,
):
    """Latest location record per vehicle. Online vehicles only by default."""
    if store is None:
        return []
    return filter_locations(store.snapshot("locations"), route_id, van_id, online)


@router.get("/{bus_id}", response_model=LocationRecord | None)
async def get_location(bus_id: str):
    if store is None:
        return None
    return store.get(f"locations/{bus_id}")
