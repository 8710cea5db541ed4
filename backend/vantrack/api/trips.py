"""Driver trip control endpoints."""

from fastapi import APIRouter, HTTPException

from vantrack.core.errors import AssignmentError, TripAlreadyActiveError, TripNotActiveError
from vantrack.schemas.trip import TripStatus

router = APIRouter(prefix="/api/drivers/{driver_id}/trip", tags=["trips"])

# Will be set by main.py
manager = None


def _require_manager():
    if manager is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return manager


@router.get("", response_model=TripStatus)
async def get_trip(driver_id: str):
    """Current trip status for the driver's screen."""
    try:
        session = _require_manager().get(driver_id)
    except TripNotActiveError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.status()


@router.post("/start", response_model=TripStatus)
async def start_trip(driver_id: str):
    """Start driving on the driver's assigned van and route."""
    try:
        session = await _require_manager().start_trip(driver_id)
    except (AssignmentError, TripAlreadyActiveError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.status()


@router.post("/arrived", response_model=TripStatus)
async def mark_arrived(driver_id: str):
    """Driver confirms arrival at the current stop."""
    try:
        session = _require_manager().mark_arrived(driver_id)
    except TripNotActiveError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.status()


@router.post("/next", response_model=TripStatus)
async def depart_next(driver_id: str):
    """Depart towards the next stop; at the final stop this ends the trip."""
    try:
        session = await _require_manager().depart_next(driver_id)
    except TripNotActiveError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.status()


@router.post("/stop", response_model=TripStatus)
async def stop_trip(driver_id: str):
    """Stop driving and take the vehicle offline."""
    try:
        session = await _require_manager().end_trip(driver_id)
    except TripNotActiveError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.status()
