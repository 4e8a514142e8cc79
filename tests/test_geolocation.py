from unittest.mock import Mock

import pytest
import requests

from prayer_dashboard.plugins.prayer_times.errors import LocationUnavailable
from prayer_dashboard.plugins.prayer_times.geolocation import (
    ConfiguredLocationProvider,
    IpLocationProvider,
    create_location_provider,
)
from prayer_dashboard.plugins.prayer_times.timings import Coordinates

from conftest import mock_response


def ip_provider(response=None, error=None, **config):
    session = Mock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return IpLocationProvider(config, session=session)


def test_configured_location_from_location_block():
    provider = ConfiguredLocationProvider({"location": {"lat": 33.5731, "lon": "-7.5898"}})
    assert provider.locate() == Coordinates(33.5731, -7.5898)


def test_configured_location_from_top_level_keys():
    provider = ConfiguredLocationProvider({"lat": 21.42, "lon": 39.83})
    assert provider.locate() == Coordinates(21.42, 39.83)


def test_configured_location_missing():
    with pytest.raises(LocationUnavailable, match="must be configured"):
        ConfiguredLocationProvider({"location": {"lat": 33.5}}).locate()


def test_configured_location_invalid():
    with pytest.raises(LocationUnavailable, match="Invalid"):
        ConfiguredLocationProvider({"location": {"lat": "north", "lon": 0}}).locate()
    with pytest.raises(LocationUnavailable):
        ConfiguredLocationProvider({"location": {"lat": 120, "lon": 0}}).locate()


def test_ip_location_success_sets_city():
    provider = ip_provider(mock_response(payload={
        "status": "success", "lat": 34.0209, "lon": -6.8416, "city": "Rabat",
    }))
    assert provider.locate() == Coordinates(34.0209, -6.8416)
    assert provider.city == "Rabat"


def test_ip_location_keeps_configured_city():
    provider = ip_provider(mock_response(payload={
        "status": "success", "lat": 34.0209, "lon": -6.8416, "city": "Rabat",
    }), city="Home")
    provider.locate()
    assert provider.city == "Home"


def test_ip_location_failure_status():
    provider = ip_provider(mock_response(payload={"status": "fail", "message": "private range"}))
    with pytest.raises(LocationUnavailable, match="private range"):
        provider.locate()


def test_ip_location_network_error():
    provider = ip_provider(error=requests.Timeout("timed out"))
    with pytest.raises(LocationUnavailable, match="timed out"):
        provider.locate()


def test_ip_location_without_coordinates():
    provider = ip_provider(mock_response(payload={"status": "success"}))
    with pytest.raises(LocationUnavailable):
        provider.locate()


def test_create_location_provider():
    assert isinstance(create_location_provider({}), ConfiguredLocationProvider)
    assert isinstance(create_location_provider({"location": {"provider": "ip"}}), IpLocationProvider)
    with pytest.raises(ValueError):
        create_location_provider({"location": {"provider": "gps"}})
