"""Stoppage watchdog: alerts once per episode when a vehicle stops moving.

Runs on its own low-frequency interval and reads only the stall clock, so
it keeps evaluating when the position feed itself has gone quiet.
"""

import asyncio
import logging
import time
import uuid
from typing import Callable

from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.errors import BroadcastWriteError
from vantrack.core.movement_tracker import MovementTracker
from vantrack.core.session_state import SessionState
from vantrack.schemas.alert import StoppageAlert
from vantrack.schemas.location import GeoPoint

logger = logging.getLogger(__name__)

STOPPAGE_THRESHOLD_SECONDS = 300


def alert_path(alert_id: str) -> str:
    return f"alerts/{alert_id}"


class StoppageWatchdog:
    def __init__(
        self,
        state: SessionState,
        movement: MovementTracker,
        store: FleetBroadcastStore,
        van_number: str,
        clock: Callable[[], float] = time.time,
        threshold_seconds: float = STOPPAGE_THRESHOLD_SECONDS,
    ) -> None:
        self.state = state
        self.movement = movement
        self.store = store
        self.van_number = van_number
        self._clock = clock
        self.threshold_seconds = threshold_seconds
        self._lock = asyncio.Lock()
        self.alerts_raised = 0

    async def check(self) -> StoppageAlert | None:
        """Raise an alert if the current stoppage episode crossed the threshold."""
        async with self._lock:
            if not self.state.is_driving or self.state.stoppage_alerted:
                return None
            stall = self.movement.stall_duration()
            if stall <= self.threshold_seconds:
                return None

            alert = self._build_alert(stall)
            try:
                await self.store.write(alert_path(alert.id), alert.to_record())
            except BroadcastWriteError:
                # Episode stays un-alerted; the next check tries again
                logger.exception("Failed to write stoppage alert for bus %s", self.state.bus_id)
                return None

            self.state.stoppage_alerted = True
            self.alerts_raised += 1
            logger.warning(
                "Stoppage alert %s: bus %s (van %s) stationary for %ds",
                alert.id, self.state.bus_id, self.van_number, int(stall),
            )
            return alert

    async def halt(self) -> None:
        """Wait for an in-flight check to finish."""
        async with self._lock:
            pass

    def _build_alert(self, stall: float) -> StoppageAlert:
        now = self._clock()
        pos = self.state.position
        minutes = int(stall // 60)
        return StoppageAlert(
            id=uuid.uuid4().hex,
            bus_id=self.state.bus_id,
            van_id=self.state.van_id,
            route_id=self.state.route_id,
            location=GeoPoint(lat=pos.lat, lng=pos.lng) if pos else None,
            start_time=int(self.state.last_movement_time * 1000),
            detected_at=int(now * 1000),
            message=f"Van {self.van_number} has not moved for {minutes} minutes.",
        )
