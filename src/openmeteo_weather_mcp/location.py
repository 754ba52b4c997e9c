import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from openmeteo_weather_mcp.api import get_json
from openmeteo_weather_mcp.config import config
from openmeteo_weather_mcp.errors import InvalidInputError, MalformedResponseError
from openmeteo_weather_mcp.models import Coordinates, LocationCandidate

logger = logging.getLogger("openmeteo_weather.location")

COORDINATE_PATTERN = re.compile(r"(-?\d+(?:\.\d+)?),\s*(-?\d+(?:\.\d+)?)", re.ASCII)

CUSTOM_COORDINATES_LABEL = "Custom coordinates"
CURRENT_LOCATION_LABEL = "Current location"

DEFAULT_LANGUAGE = "en"

REGION_FIELDS = ("admin1", "admin2", "country")


def parse_coordinates(text: str) -> Optional[LocationCandidate]:
    """Recognize "lat, lon" input such as "37.5, 127.0" or "-12.3,45"

    Returns None when the text is not a coordinate pair. A pair that is
    well formed but outside the valid latitude/longitude range raises
    InvalidInputError.
    """
    match = COORDINATE_PATTERN.fullmatch(text.strip())
    if not match:
        return None

    latitude, longitude = float(match.group(1)), float(match.group(2))
    try:
        return LocationCandidate(name=CUSTOM_COORDINATES_LABEL, latitude=latitude, longitude=longitude)
    except ValidationError as e:
        raise InvalidInputError(f"Coordinates out of range: {latitude}, {longitude}") from e


def candidate_from_coordinates(coords: Coordinates) -> LocationCandidate:
    """Wrap a device position as a selectable location"""
    return LocationCandidate(
        name=CURRENT_LOCATION_LABEL,
        latitude=coords.latitude,
        longitude=coords.longitude,
    )


def _region(record: Dict[str, Any]) -> str:
    parts = [record.get(field) for field in REGION_FIELDS]
    return ", ".join(part.strip() for part in parts if isinstance(part, str) and part.strip())


def _parse_candidate(record: Any) -> LocationCandidate:
    try:
        return LocationCandidate(
            name=str(record["name"]),
            region=_region(record),
            latitude=float(record["latitude"]),
            longitude=float(record["longitude"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Invalid geocoding record {record}: {str(e)}")
        raise MalformedResponseError() from e


class GeocodingClient:
    """Client for the Open-Meteo geocoding search API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or config.geocoding_url
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._transport = transport

    async def search(
        self, query: str, language: str = DEFAULT_LANGUAGE, limit: Optional[int] = None
    ) -> List[LocationCandidate]:
        """Search for locations matching free text, in API order

        An empty list means nothing matched; that is not an error.
        """
        params = {
            "name": query,
            "count": limit if limit is not None else config.search_limit,
            "language": language.strip() if language and language.strip() else DEFAULT_LANGUAGE,
            "format": "json",
        }
        logger.info(f"Searching locations for '{query}'")
        logger.debug(f"Query parameters: {params}")

        data = await get_json(self.base_url, params, self.timeout, self._transport)
        if not isinstance(data, dict):
            logger.error(f"Unexpected geocoding response: {data}")
            raise MalformedResponseError()

        results = data.get("results")
        if not results:
            logger.info(f"No locations found for '{query}'")
            return []
        if not isinstance(results, list):
            logger.error(f"Geocoding results is not a list: {results}")
            raise MalformedResponseError()

        candidates = [_parse_candidate(record) for record in results]
        logger.info(f"Found {len(candidates)} locations for '{query}'")
        return candidates
