import logging
from typing import Any, Dict, Optional

import httpx

from openmeteo_weather_mcp.errors import MalformedResponseError, NetworkError, RemoteError

logger = logging.getLogger("openmeteo_weather.api")

USER_AGENT = "OpenMeteo_Weather_MCP/1.0"


def _error_reason(response: httpx.Response) -> Optional[str]:
    """Extract the reason from an Open-Meteo error payload, if the body is one"""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("reason"):
        return str(payload["reason"])
    return None


async def get_json(
    url: str,
    params: Dict[str, Any],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """GET a JSON document, mapping transport and status failures to WeatherError types"""
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport) as client:
            response = await client.get(url, params=params, headers={"User-Agent": USER_AGENT})
    except httpx.TransportError as e:
        logger.error(f"Request to {url} failed: {str(e)}")
        raise NetworkError() from e

    if not response.is_success:
        reason = _error_reason(response)
        logger.error(f"Request to {response.request.url} returned HTTP {response.status_code}: {reason}")
        raise RemoteError(response.status_code, reason)

    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Response from {url} is not valid JSON: {str(e)}")
        raise MalformedResponseError() from e
