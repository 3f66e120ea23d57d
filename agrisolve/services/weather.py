import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from ..models import Coordinate

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
FORECAST_DAYS = 5


def get_open_meteo_url() -> str:
    return os.getenv("OPEN_METEO_URL", OPEN_METEO_URL)


class ForecastDay(BaseModel):
    day: str
    temp: int
    condition: str


class WeatherSnapshot(BaseModel):
    temperature: int
    humidity: int
    windSpeed: int
    condition: str
    location: str
    forecast: List[ForecastDay]


DEFAULT_SNAPSHOT = WeatherSnapshot(
    temperature=28,
    humidity=65,
    windSpeed=12,
    condition="sunny",
    location="Enable Location",
    forecast=[
        ForecastDay(day="Mon", temp=28, condition="sunny"),
        ForecastDay(day="Tue", temp=26, condition="partly-cloudy"),
        ForecastDay(day="Wed", temp=24, condition="rainy"),
        ForecastDay(day="Thu", temp=27, condition="sunny"),
        ForecastDay(day="Fri", temp=29, condition="sunny"),
    ],
)


def condition_from_code(code: Optional[int]) -> str:
    """Map a WMO weather code onto the widget's four conditions."""
    if code is None:
        return "cloudy"
    if code <= 1:
        return "sunny"
    if code == 2:
        return "partly-cloudy"
    if code < 51:
        return "cloudy"
    return "rainy"


def _round(value: Any) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return 0


def _normalize(raw: Dict[str, Any]) -> WeatherSnapshot:
    current = raw.get("current", {})
    daily = raw.get("daily", {})
    times = daily.get("time", [])
    tmax = daily.get("temperature_2m_max", [])
    codes = daily.get("weather_code", [])

    forecast = []
    for i, day in enumerate(times[:FORECAST_DAYS]):
        try:
            label = datetime.strptime(day, "%Y-%m-%d").strftime("%a")
        except ValueError:
            label = day
        forecast.append(ForecastDay(
            day=label,
            temp=_round(tmax[i]) if i < len(tmax) else 0,
            condition=condition_from_code(codes[i] if i < len(codes) else None),
        ))

    return WeatherSnapshot(
        temperature=_round(current.get("temperature_2m")),
        humidity=_round(current.get("relative_humidity_2m")),
        windSpeed=_round(current.get("wind_speed_10m")),
        condition=condition_from_code(current.get("weather_code")),
        location="Your Location",
        forecast=forecast,
    )


def fetch_weather(location: Optional[Coordinate], transport: Optional[httpx.BaseTransport] = None) -> WeatherSnapshot:
    """Current conditions and a short forecast for `location` from Open-Meteo (no key needed).

    Without a location the fixed default snapshot is returned.
    """
    if location is None:
        return DEFAULT_SNAPSHOT
    params = {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
        "daily": "weather_code,temperature_2m_max",
        "timezone": "auto",
        "forecast_days": FORECAST_DAYS,
    }
    try:
        with httpx.Client(timeout=20.0, transport=transport) as client:
            resp = client.get(get_open_meteo_url(), params=params)
            resp.raise_for_status()
            raw = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[fetch_weather] Open-Meteo request failed: %s", e)
        raise ValueError(f"Weather API error: {e}")
    return _normalize(raw)
