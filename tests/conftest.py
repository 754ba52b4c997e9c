import json
from typing import List, Optional

import httpx
import pytest

from openmeteo_weather_mcp.models import LocationCandidate, WeatherReading

SEOUL = LocationCandidate(name="Seoul", region="Seoul, South Korea", latitude=37.566, longitude=126.9784)


def springfields(count: int = 5) -> List[LocationCandidate]:
    return [
        LocationCandidate(name="Springfield", region=f"State {i}", latitude=30.0 + i, longitude=-90.0 - i)
        for i in range(count)
    ]


def reading(temperature: float = 21.5, code: int = 3, observed_at: str = "2024-05-01T14:30") -> WeatherReading:
    return WeatherReading(
        temperature_c=temperature,
        humidity_percent=55,
        wind_speed_kmh=7.2,
        condition_code=code,
        observed_at=observed_at,
    )


class FakeGeocoder:
    def __init__(self, results: Optional[List[LocationCandidate]] = None, error: Optional[Exception] = None):
        self.results = results or []
        self.error = error
        self.calls = []

    async def search(self, query, language="en", limit=None):
        self.calls.append((query, language))
        if self.error:
            raise self.error
        return list(self.results)


class FakeForecaster:
    def __init__(self, result: Optional[WeatherReading] = None, error: Optional[Exception] = None):
        self.result = result or reading()
        self.error = error
        self.calls = []

    async def fetch_current(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error:
            raise self.error
        return self.result


def json_transport(payload, status_code: int = 200, requests: Optional[list] = None) -> httpx.MockTransport:
    """Transport answering every request with the same JSON body"""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))

    return httpx.MockTransport(handler)


@pytest.fixture
def geocoding_payload():
    return {
        "results": [
            {"name": "Seoul", "latitude": 37.566, "longitude": 126.9784, "admin1": "Seoul", "country": "South Korea"},
            {
                "name": "Springfield",
                "latitude": 39.80172,
                "longitude": -89.64371,
                "admin1": "Illinois",
                "admin2": "Sangamon",
                "country": "United States",
            },
            {"name": "Null Island", "latitude": 0.0, "longitude": 0.0, "admin1": "  ", "country": ""},
        ],
        "generationtime_ms": 0.5,
    }


@pytest.fixture
def forecast_payload():
    return {
        "latitude": 37.55,
        "longitude": 127.0,
        "timezone": "Asia/Seoul",
        "current": {
            "time": "2024-05-01T14:30",
            "interval": 900,
            "temperature_2m": 18.4,
            "relative_humidity_2m": 62,
            "wind_speed_10m": 9.7,
            "weather_code": 61,
        },
    }
