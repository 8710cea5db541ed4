"""Stoppage alert endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from vantrack.core.errors import BroadcastWriteError
from vantrack.schemas.alert import StoppageAlert

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["alerts"])

# Will be set by main.py
store = None


def filter_alerts(records: list[dict], resolved: bool | None = None) -> list[dict]:
    alerts = [a for a in records if resolved is None or bool(a.get("isResolved")) == resolved]
    alerts.sort(key=lambda a: a.get("detectedAt", 0), reverse=True)
    return alerts


@router.get("", response_model=list[StoppageAlert])
async def list_alerts(resolved: bool | None = False):
    """Stoppage alerts, newest first. Unresolved only by default."""
    if store is None:
        return []
    return filter_alerts(store.snapshot("alerts"), resolved)


@router.post("/{alert_id}/resolve", response_model=StoppageAlert)
async def resolve_alert(alert_id: str):
    """Acknowledge an alert."""
    if store is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    try:
        record = await store.update(f"alerts/{alert_id}", {"isResolved": True})
    except KeyError:
        raise HTTPException(status_code=404, detail="Alert not found")
    except BroadcastWriteError:
        logger.exception("Failed to resolve alert %s", alert_id)
        raise HTTPException(status_code=503, detail="Alert store unavailable")
    logger.info("Alert %s resolved", alert_id)
    return record
