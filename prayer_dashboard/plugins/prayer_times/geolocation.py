"""
Location providers: where the user is, as Coordinates.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from .errors import LocationUnavailable
from .timings import Coordinates


class LocationProvider(ABC):
    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self.city: Optional[str] = config.get("city")

    @abstractmethod
    def locate(self) -> Coordinates:
        """Return the current coordinates or raise LocationUnavailable"""
        pass


class ConfiguredLocationProvider(LocationProvider):
    """Coordinates taken from the component's location config"""

    def locate(self) -> Coordinates:
        location = self.config.get("location") or {}
        lat = location.get("lat", self.config.get("lat"))
        lon = location.get("lon", self.config.get("lon"))

        if lat is None or lon is None:
            raise LocationUnavailable("Latitude and longitude must be configured")

        try:
            return Coordinates(float(lat), float(lon))
        except (TypeError, ValueError) as e:
            raise LocationUnavailable(f"Invalid latitude or longitude values: {e}") from e


class IpLocationProvider(LocationProvider):
    """Approximate coordinates from the public IP address via ip-api.com"""

    LOCATION_API = "http://ip-api.com/json/"

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        super().__init__(config)
        self.session = session or requests.Session()

    def locate(self) -> Coordinates:
        timeout = self.config.get("request_timeout", 5)
        try:
            response = self.session.get(self.LOCATION_API, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.error(f"IP geolocation failed: {e}")
            raise LocationUnavailable(f"Location lookup failed: {e}") from e

        if data.get("status") != "success":
            raise LocationUnavailable(f"Location lookup failed: {data.get('message', 'unknown error')}")

        try:
            coords = Coordinates(float(data["lat"]), float(data["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise LocationUnavailable(f"Location lookup returned no coordinates: {e}") from e

        if not self.config.get("city") and data.get("city"):
            self.city = data["city"]
        self.logger.info(f"Located {self.city or 'user'} at {coords}")
        return coords


def create_location_provider(config: Dict[str, Any]) -> LocationProvider:
    """Pick the provider named by location.provider (default: configured coordinates)"""
    provider = (config.get("location") or {}).get("provider", "config")
    if provider == "config":
        return ConfiguredLocationProvider(config)
    if provider == "ip":
        return IpLocationProvider(config)
    raise ValueError(f"Unknown location provider: {provider}")
