"""Stall clock: tracks when the vehicle last moved significantly."""

import logging
import time
from typing import Callable

from vantrack.core.geo import haversine_m
from vantrack.core.session_state import PositionSample, SessionState

logger = logging.getLogger(__name__)

# Displacement between consecutive samples that counts as movement
SIGNIFICANT_MOVEMENT_M = 30.0


class MovementTracker:
    """Maintains last_movement_time and the latest known position.

    Movement is measured against the immediately preceding sample, not a
    fixed anchor, so a slow continuous drift of less than the threshold per
    sample never resets the stall clock.
    """

    def __init__(
        self,
        state: SessionState,
        clock: Callable[[], float] = time.time,
        threshold_m: float = SIGNIFICANT_MOVEMENT_M,
    ) -> None:
        self.state = state
        self._clock = clock
        self.threshold_m = threshold_m

    def reset(self) -> None:
        self.state.last_movement_time = self._clock()
        self.state.position = None
        self.state.stoppage_alerted = False

    def update(self, sample: PositionSample) -> bool:
        """Apply a sample. Returns True if it counted as significant movement."""
        now = self._clock()
        prev = self.state.position
        moved = False

        if prev is None:
            self.state.last_movement_time = now
        else:
            dist = haversine_m(prev.lat, prev.lng, sample.lat, sample.lng)
            if dist > self.threshold_m:
                moved = True
                self.state.last_movement_time = now
                if self.state.stoppage_alerted:
                    logger.info("Bus %s moving again, stoppage episode closed", self.state.bus_id)
                self.state.stoppage_alerted = False

        self.state.position = sample
        return moved

    def stall_duration(self) -> float:
        """Seconds since the last significant movement."""
        return max(0.0, self._clock() - self.state.last_movement_time)
