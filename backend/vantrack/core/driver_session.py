"""One driver's trip: wires the sampler, trackers, publisher and watchdog together."""

import logging
import time
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from vantrack.config import settings
from vantrack.core.broadcaster import FleetBroadcastStore
from vantrack.core.errors import SensorError
from vantrack.core.fleet import Assignment
from vantrack.core.geo_sampler import GeoSampler
from vantrack.core.movement_tracker import MovementTracker
from vantrack.core.publisher import LocationPublisher
from vantrack.core.scheduler import cancel_session_jobs, schedule_session_jobs
from vantrack.core.session_state import PositionSample, SessionState
from vantrack.core.trip_progress import TripProgressEngine
from vantrack.core.watchdog import StoppageWatchdog
from vantrack.schemas.location import GeoPoint
from vantrack.schemas.trip import SensorErrorInfo, TripStatus

logger = logging.getLogger(__name__)


class DriverSession:
    """Owns the SessionState of one trip and the components that share it.

    Samples arrive through ``sampler``; the publisher and watchdog run as
    scheduler jobs. All of them run on the same event loop.
    """

    def __init__(
        self,
        assignment: Assignment,
        store: FleetBroadcastStore,
        scheduler: AsyncIOScheduler,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.assignment = assignment
        self.bus_id = assignment.driver_id
        self.scheduler = scheduler
        self._clock = clock

        self.state = SessionState(
            bus_id=self.bus_id,
            route_id=assignment.route.id,
            van_id=assignment.van.id,
        )
        self.sampler = GeoSampler(clock)
        self.movement = MovementTracker(self.state, clock, settings.movement_threshold_m)
        self.progress = TripProgressEngine(self.state, assignment.route, settings.arrival_radius_m)
        self.publisher = LocationPublisher(self.state, self.progress, store, clock)
        self.watchdog = StoppageWatchdog(
            self.state, self.movement, store, assignment.van.van_number, clock,
            settings.stoppage_threshold_seconds,
        )

    @property
    def is_active(self) -> bool:
        return self.state.is_driving

    def start(self) -> None:
        self.state.started_at = self._clock()
        self.progress.reset()
        self.movement.reset()
        self.state.sensor_error = None
        self.state.is_driving = True
        self.sampler.start(self._on_sample, self._on_sensor_error)
        schedule_session_jobs(self.scheduler, self)
        logger.info(
            "Trip started: driver %s (%s), van %s, route %s (%d stops)",
            self.bus_id, self.assignment.driver_name or "unnamed", self.assignment.van.van_number,
            self.assignment.route.name, len(self.assignment.route.stops),
        )

    def _on_sample(self, sample: PositionSample) -> None:
        if self.state.sensor_error is not None:
            logger.info("Bus %s: position fix recovered", self.bus_id)
            self.state.sensor_error = None
        self.movement.update(sample)
        self.progress.update(sample)

    def _on_sensor_error(self, error: SensorError) -> None:
        logger.warning("Bus %s sensor error %d: %s", self.bus_id, error.code, error.message)
        self.state.sensor_error = error

    def mark_arrived(self) -> None:
        self.progress.mark_arrived()
        logger.info("Bus %s arrived at %s", self.bus_id, self.progress.current_stop.name)

    async def depart_next(self) -> bool:
        """Move on to the next stop. At the last stop this ends the trip.

        Returns True while the trip continues.
        """
        if self.progress.depart():
            return True
        logger.info("Bus %s completed route %s", self.bus_id, self.state.route_id)
        await self.end()
        return False

    async def end(self) -> None:
        """Tear the trip down completely before returning.

        Order matters: no sample, tick or check may land after the terminal
        offline record.
        """
        if not self.state.is_driving:
            return
        self.state.is_driving = False
        self.sampler.stop()
        cancel_session_jobs(self.scheduler, self.bus_id)
        await self.watchdog.halt()
        await self.publisher.halt()
        await self.publisher.publish_offline()
        self.progress.reset()
        logger.info("Trip ended: driver %s", self.bus_id)

    def status(self) -> TripStatus:
        state = self.state
        stop = self.progress.current_stop
        pos = state.position
        err = state.sensor_error
        return TripStatus(
            driver_id=self.bus_id,
            route_id=state.route_id,
            route_name=self.assignment.route.name,
            van_id=state.van_id,
            van_number=self.assignment.van.van_number,
            is_driving=state.is_driving,
            current_stop_index=state.current_stop_index,
            stop_count=len(self.progress.stops),
            next_stop_id=stop.id if stop else None,
            next_stop_name=stop.name if stop else None,
            arrival_status=state.arrival_status,
            distance_to_stop_m=(
                round(state.distance_to_stop_m, 1) if state.distance_to_stop_m is not None else None
            ),
            position=GeoPoint(lat=pos.lat, lng=pos.lng) if pos else None,
            stall_seconds=round(self.movement.stall_duration(), 1) if state.is_driving else 0.0,
            sensor_error=SensorErrorInfo(code=err.code, message=err.message) if err else None,
        )
