"""Diagnostics API for live driver sessions."""

from fastapi import APIRouter

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
manager = None


@router.get("")
async def get_diagnostics():
    """Active sessions with sample, publish and watchdog counters."""
    if manager is None:
        return {"error": "Session manager not initialized"}
    return manager.get_diagnostics()


@router.get("/sessions/{driver_id}")
async def get_session_diagnostics(driver_id: str):
    if manager is None:
        return {"error": "Session manager not initialized"}
    for s in manager.get_diagnostics()["sessions"]:
        if s["driver_id"] == driver_id:
            return s
    return {"error": "Session not found"}
