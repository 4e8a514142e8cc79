"""
Error kinds raised by the prayer times plugin.
"""


class PrayerTimesError(Exception):
    """Base class for prayer times failures shown to the user"""

    message = "Prayer times unavailable"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class LocationUnavailable(PrayerTimesError):
    """Location could not be determined (not configured, denied or lookup failed)"""

    message = "Could not determine your location"


class FetchFailure(PrayerTimesError):
    """Calendar request failed or returned a body we could not use"""

    message = "Could not load prayer times"


class InvalidTimeFormat(ValueError):
    """A time-of-day string is not a strict HH:MM value"""
