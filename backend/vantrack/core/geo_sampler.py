"""Normalizes the device position stream into PositionSample values.

The device pushes fixes at whatever rate the platform delivers them (bursts
and gaps included). The sampler forwards each one to the session's sample
callback, and device-side failures to the error callback, until stopped.
"""

import logging
import time
from typing import Callable

from vantrack.core.errors import SensorError
from vantrack.core.session_state import PositionSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[PositionSample], None]
ErrorCallback = Callable[[SensorError], None]


def normalize_sample(raw: dict, now: float) -> PositionSample | None:
    """Parse a raw fix into a PositionSample, or None if it is unusable.

    Accepts flat dicts ({lat, lng, speed, timestamp}) as well as the browser
    GeolocationPosition shape ({coords: {latitude, longitude, speed}, timestamp}).
    Timestamps are epoch milliseconds, as the platform reports them.
    """
    coords = raw.get("coords", raw)
    if not isinstance(coords, dict):
        return None
    try:
        lat = float(coords.get("latitude", coords.get("lat")))
        lng = float(coords.get("longitude", coords.get("lng", coords.get("lon"))))
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        return None

    # Browsers report speed as null when the device cannot compute it
    try:
        speed = float(coords.get("speed") or 0.0)
    except (TypeError, ValueError):
        speed = 0.0
    if speed < 0:
        speed = 0.0

    raw_ts = raw.get("timestamp")
    try:
        timestamp = float(raw_ts) / 1000.0 if raw_ts is not None else now
    except (TypeError, ValueError):
        timestamp = now

    return PositionSample(lat=lat, lng=lng, speed=speed, timestamp=timestamp)


class GeoSampler:
    """One-shot position feed for a single driver session."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._on_sample: SampleCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._started = False
        self._active = False
        self.received = 0
        self.dropped = 0

    @property
    def active(self) -> bool:
        return self._active

    def start(self, on_sample: SampleCallback, on_error: ErrorCallback) -> None:
        if self._started:
            raise RuntimeError("GeoSampler cannot be restarted")
        self._started = True
        self._active = True
        self._on_sample = on_sample
        self._on_error = on_error

    def stop(self) -> None:
        """Stop delivery. Nothing reaches the callbacks after this returns."""
        self._active = False
        self._on_sample = None
        self._on_error = None

    def feed(self, raw: dict) -> PositionSample | None:
        """Deliver one raw fix from the device."""
        if not self._active:
            return None
        sample = normalize_sample(raw, self._clock())
        if sample is None:
            self.dropped += 1
            logger.warning("Dropping malformed position fix: %r", raw)
            return None
        self.received += 1
        self._on_sample(sample)
        return sample

    def report_error(self, error: SensorError) -> None:
        """Deliver a device-side failure; the feed stays open."""
        if not self._active:
            return
        self._on_error(error)
