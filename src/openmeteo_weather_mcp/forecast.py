import logging
import math
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from openmeteo_weather_mcp.api import get_json
from openmeteo_weather_mcp.config import config
from openmeteo_weather_mcp.errors import MalformedResponseError
from openmeteo_weather_mcp.models import WeatherReading

logger = logging.getLogger("openmeteo_weather.forecast")


class ForecastClient:
    """Fetches current conditions from the Open-Meteo forecast API"""

    # Mapping from API fields to WeatherReading fields
    CURRENT_FIELDS = {
        "temperature_2m": "temperature_c",
        "relative_humidity_2m": "humidity_percent",
        "wind_speed_10m": "wind_speed_kmh",
        "weather_code": "condition_code",
    }

    INTEGER_FIELDS = ("humidity_percent", "condition_code")

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or config.forecast_url
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._transport = transport

    async def fetch_current(self, latitude: float, longitude: float) -> WeatherReading:
        """Get the current conditions snapshot for a point"""
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join(self.CURRENT_FIELDS),
            "timezone": "auto",
        }
        logger.info(f"Fetching current weather for ({latitude}, {longitude})")

        data = await get_json(self.base_url, params, self.timeout, self._transport)
        current = data.get("current") if isinstance(data, dict) else None
        if not isinstance(current, dict):
            logger.error(f"Forecast response has no current conditions: {data}")
            raise MalformedResponseError()

        reading = self._parse_current(current)
        logger.debug(f"Current conditions: {reading}")
        return reading

    def _parse_number(self, api_field: str, value: Any) -> float:
        """Coerce a numeric or numeric-string value, rejecting booleans and non-finite numbers"""
        try:
            if isinstance(value, bool):
                raise TypeError("boolean is not a number")
            number = float(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Missing or non-numeric '{api_field}' in current conditions: {value!r}")
            raise MalformedResponseError() from e
        if not math.isfinite(number):
            logger.error(f"Non-finite '{api_field}' in current conditions: {value!r}")
            raise MalformedResponseError()
        return number

    def _parse_current(self, current: Dict[str, Any]) -> WeatherReading:
        values: Dict[str, Any] = {}
        for api_field, model_field in self.CURRENT_FIELDS.items():
            number = self._parse_number(api_field, current.get(api_field))
            # Whole-number fields are truncated, not rounded
            values[model_field] = int(number) if model_field in self.INTEGER_FIELDS else number

        observed_at = current.get("time")
        values["observed_at"] = observed_at if isinstance(observed_at, str) else ""

        try:
            return WeatherReading(**values)
        except ValidationError as e:
            logger.error(f"Invalid current conditions {current}: {str(e)}")
            raise MalformedResponseError() from e
