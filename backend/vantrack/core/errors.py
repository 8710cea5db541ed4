"""Errors raised by the trip pipeline."""


class AssignmentError(Exception):
    """Driver has no usable van/route assignment; the trip cannot start."""


class TripAlreadyActiveError(Exception):
    pass


class TripNotActiveError(Exception):
    pass


class BroadcastWriteError(Exception):
    """The broadcast store rejected or could not complete a write."""


class SensorError(Exception):
    """Position fix could not be obtained on the device.

    Codes follow the browser Geolocation API.
    """

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"sensor error {code}")
        self.code = code
        self.message = message or f"sensor error {code}"
