import httpx
import pytest

from agrisolve.models import Coordinate
from agrisolve.services.weather import DEFAULT_SNAPSHOT, condition_from_code, fetch_weather

OPEN_METEO_BODY = {
    "current": {
        "temperature_2m": 27.6,
        "relative_humidity_2m": 71,
        "wind_speed_10m": 9.4,
        "weather_code": 3,
    },
    "daily": {
        "time": ["2026-10-19", "2026-10-20", "2026-10-21", "2026-10-22", "2026-10-23"],
        "weather_code": [0, 2, 61, 45, 1],
        "temperature_2m_max": [30.2, 29.5, 25.1, 27.0, 31.8],
    },
}


def test_without_location_returns_default():
    assert fetch_weather(None) == DEFAULT_SNAPSHOT
    assert DEFAULT_SNAPSHOT.location == "Enable Location"


def test_open_meteo_response_is_normalised():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=OPEN_METEO_BODY)

    snapshot = fetch_weather(Coordinate(latitude=12.97, longitude=77.59), transport=httpx.MockTransport(handler))

    assert seen[0].url.params["latitude"] == "12.97"
    assert seen[0].url.params["longitude"] == "77.59"
    assert snapshot.temperature == 28
    assert snapshot.humidity == 71
    assert snapshot.windSpeed == 9
    assert snapshot.condition == "cloudy"
    assert snapshot.location == "Your Location"
    assert [d.day for d in snapshot.forecast] == ["Mon", "Tue", "Wed", "Thu", "Fri"]
    assert [d.condition for d in snapshot.forecast] == ["sunny", "partly-cloudy", "rainy", "cloudy", "sunny"]
    assert snapshot.forecast[0].temp == 30


def test_upstream_failure_raises_value_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(ValueError, match="Weather API error"):
        fetch_weather(Coordinate(latitude=1.0, longitude=2.0), transport=transport)


@pytest.mark.parametrize("code, condition", [
    (None, "cloudy"), (0, "sunny"), (1, "sunny"), (2, "partly-cloudy"), (48, "cloudy"), (51, "rainy"), (95, "rainy"),
])
def test_condition_from_code(code, condition):
    assert condition_from_code(code) == condition
