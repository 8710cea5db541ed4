"""Throttled location broadcast: one record per tick regardless of sample rate."""

import asyncio
import logging
import time
from typing import Callable

from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.errors import BroadcastWriteError
from vantrack.core.session_state import SessionState
from vantrack.core.trip_progress import TripProgressEngine
from vantrack.schemas.location import LocationRecord

logger = logging.getLogger(__name__)


def location_path(bus_id: str) -> str:
    return f"locations/{bus_id}"


class LocationPublisher:
    """Writes the latest position and trip progress to ``locations/{busId}``.

    Driven by its own interval job, not by sample arrival. A failed write is
    logged and left for the next tick to supersede.
    """

    def __init__(
        self,
        state: SessionState,
        progress: TripProgressEngine,
        store: FleetBroadcastStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.progress = progress
        self.store = store
        self._clock = clock
        self._lock = asyncio.Lock()
        self.published = 0
        self.failed = 0
        self.last_published_at: float | None = None

    async def tick(self) -> LocationRecord | None:
        """Publish one record, or nothing if there is no usable position."""
        async with self._lock:
            if not self.state.is_driving:
                return None
            sample = self.state.position
            if sample is None or self.state.sensor_error is not None:
                return None

            trip = self.progress.snapshot()
            now = self._clock()
            record = LocationRecord(
                bus_id=self.state.bus_id,
                lat=sample.lat,
                lng=sample.lng,
                speed=sample.speed,
                route_id=trip.route_id,
                van_id=trip.van_id,
                next_stop_id=trip.next_stop_id,
                next_stop_name=trip.next_stop_name,
                arrival_status=trip.arrival_status,
                updated_at=int(now * 1000),
                is_online=True,
            )
            if await self._write(record):
                self.last_published_at = now
                return record
            return None

    async def publish_offline(self) -> LocationRecord:
        """Terminal write signalling that the vehicle is no longer on a trip."""
        async with self._lock:
            record = LocationRecord(
                bus_id=self.state.bus_id,
                lat=0.0,
                lng=0.0,
                speed=0.0,
                route_id="",
                van_id=self.state.van_id,
                updated_at=int(self._clock() * 1000),
                is_online=False,
            )
            await self._write(record)
            logger.info("Bus %s marked offline", self.state.bus_id)
            return record

    async def halt(self) -> None:
        """Wait for an in-flight tick to finish."""
        async with self._lock:
            pass

    async def _write(self, record: LocationRecord) -> bool:
        try:
            await self.store.write(location_path(record.bus_id), record.to_record())
        except BroadcastWriteError:
            self.failed += 1
            logger.exception("Failed to publish location for bus %s", record.bus_id)
            return False
        self.published += 1
        return True
