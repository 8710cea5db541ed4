"""Registry of active driver sessions: one trip per driver at a time."""

import logging
import time
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.driver_session import DriverSession
from vantrack.core.errors import TripAlreadyActiveError, TripNotActiveError

logger = logging.getLogger(__name__)


class SessionManager:
    """Starts, drives and ends driver trips.

    ``repository`` is anything with ``async get_assignment(driver_id)``.
    """

    def __init__(
        self,
        repository,
        store: FleetBroadcastStore,
        scheduler: AsyncIOScheduler,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.repository = repository
        self.store = store
        self.scheduler = scheduler
        self._clock = clock
        self._sessions: dict[str, DriverSession] = {}

    @property
    def sessions(self) -> dict[str, DriverSession]:
        return self._sessions

    def get(self, driver_id: str) -> DriverSession:
        session = self._sessions.get(driver_id)
        if session is None or not session.is_active:
            raise TripNotActiveError(f"Driver {driver_id} has no active trip")
        return session

    def find(self, driver_id: str) -> DriverSession | None:
        session = self._sessions.get(driver_id)
        return session if session and session.is_active else None

    async def start_trip(self, driver_id: str) -> DriverSession:
        if self.find(driver_id) is not None:
            raise TripAlreadyActiveError(f"Driver {driver_id} already has an active trip")

        # AssignmentError propagates: no driving state without a van and route
        assignment = await self.repository.get_assignment(driver_id)

        # Another start for this driver may have completed during the lookup
        if self.find(driver_id) is not None:
            raise TripAlreadyActiveError(f"Driver {driver_id} already has an active trip")

        session = DriverSession(assignment, self.store, self.scheduler, self._clock)
        session.start()
        self._sessions[driver_id] = session
        return session

    def mark_arrived(self, driver_id: str) -> DriverSession:
        session = self.get(driver_id)
        session.mark_arrived()
        return session

    async def depart_next(self, driver_id: str) -> DriverSession:
        session = self.get(driver_id)
        if not await session.depart_next():
            self._sessions.pop(driver_id, None)
        return session

    async def end_trip(self, driver_id: str) -> DriverSession:
        session = self.get(driver_id)
        await session.end()
        self._sessions.pop(driver_id, None)
        return session

    async def shutdown(self) -> None:
        """End every active trip so each vehicle gets its offline record."""
        for driver_id in list(self._sessions):
            session = self._sessions.pop(driver_id)
            await session.end()
        logger.info("All driver sessions closed")

    def get_diagnostics(self) -> dict:
        now = self._clock()
        sessions = []
        for driver_id, s in self._sessions.items():
            pub = s.publisher
            sessions.append({
                "driver_id": driver_id,
                "van_id": s.state.van_id,
                "route_id": s.state.route_id,
                "current_stop_index": s.state.current_stop_index,
                "arrival_status": s.state.arrival_status.value,
                "samples_received": s.sampler.received,
                "samples_dropped": s.sampler.dropped,
                "sensor_error": s.state.sensor_error.message if s.state.sensor_error else None,
                "stall_seconds": round(s.movement.stall_duration(), 1),
                "stoppage_alerted": s.state.stoppage_alerted,
                "alerts_raised": s.watchdog.alerts_raised,
                "publishes_ok": pub.published,
                "publishes_failed": pub.failed,
                "seconds_since_publish": (
                    round(now - pub.last_published_at, 1) if pub.last_published_at else None
                ),
            })
        return {
            "active_sessions": len(sessions),
            "sessions": sorted(sessions, key=lambda x: x["driver_id"]),
        }
