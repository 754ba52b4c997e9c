import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP
from pydantic import ValidationError

from openmeteo_weather_mcp.codes import describe
from openmeteo_weather_mcp.config import config
from openmeteo_weather_mcp.errors import InvalidInputError, WeatherError
from openmeteo_weather_mcp.forecast import ForecastClient
from openmeteo_weather_mcp.location import CUSTOM_COORDINATES_LABEL, GeocodingClient
from openmeteo_weather_mcp.models import LocationCandidate
from openmeteo_weather_mcp.weather import WeatherService

logger = logging.getLogger("openmeteo_weather")


def setup_logging(log_dir: Path = Path("logs")) -> None:
    """Log to logs/openmeteo_weather.log and the console"""
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / "openmeteo_weather.log"

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),
        ],
    )


mcp = FastMCP(
    "Open-Meteo Weather",
    instructions="Current weather for any place name or coordinates, from Open-Meteo",
    dependencies=["httpx", "pydantic", "pydantic-settings", "python-dotenv"],
    debug=False,
    log_level="INFO",
    port=config.port,
)

# Clients are stateless and shared, every tool call gets its own service
geocoding_client = GeocodingClient()
forecast_client = ForecastClient()


def new_service() -> WeatherService:
    return WeatherService(geocoder=geocoding_client, forecaster=forecast_client)


def candidate_to_dict(candidate: LocationCandidate) -> Dict[str, Any]:
    return {
        "name": candidate.name,
        "region": candidate.region,
        "display_name": candidate.display_name,
        "latitude": candidate.latitude,
        "longitude": candidate.longitude,
    }


# Tools
@mcp.tool()
async def search_location(query: str, ctx: Context) -> Union[List[Dict[str, Any]], str]:
    """
    Search for locations matching a place name

    Args:
        query: Search term for location
    """
    logger.info(f"Searching locations for {query}")
    try:
        if not query.strip():
            raise InvalidInputError()
        candidates = await geocoding_client.search(query.strip(), config.language)
        await ctx.info(f"Found {len(candidates)} locations for {query}")
        return [candidate_to_dict(candidate) for candidate in candidates]
    except WeatherError as e:
        logger.error(f"Error searching locations: {str(e)}")
        return f"Error: Unable to search for {query}. {str(e)}"


@mcp.tool()
async def get_location_weather(location: str, ctx: Context) -> Union[Dict[str, Any], str]:
    """
    Get current weather for a place name or "latitude, longitude" text

    When the name is ambiguous, the matching candidates are returned instead;
    call get_coordinates_weather with the coordinates of the intended one.

    Args:
        location: Place name, or coordinates such as "37.5665, 126.9780"
    """
    logger.info(f"Starting weather request for {location}")
    try:
        result = await new_service().search(location)
        if result.needs_selection:
            await ctx.info(f"{len(result.candidates)} locations match {location}")
            return {
                "requested_location": location,
                "candidates": [candidate_to_dict(candidate) for candidate in result.candidates],
            }

        logger.info("Weather data retrieved successfully")
        return result.weather.model_dump()
    except WeatherError as e:
        logger.error(f"Error getting weather: {str(e)}")
        return f"Error: Unable to get weather data for {location}. {str(e)}"


@mcp.tool()
async def get_coordinates_weather(latitude: float, longitude: float, ctx: Context) -> Union[Dict[str, Any], str]:
    """
    Get current weather for a point

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    try:
        try:
            candidate = LocationCandidate(name=CUSTOM_COORDINATES_LABEL, latitude=latitude, longitude=longitude)
        except ValidationError as e:
            raise InvalidInputError(f"Coordinates out of range: {latitude}, {longitude}") from e
        weather = await new_service().select(candidate)
        await ctx.info(f"Weather retrieved for ({latitude}, {longitude})")
        return weather.model_dump()
    except WeatherError as e:
        logger.error(f"Error getting weather for ({latitude}, {longitude}): {str(e)}")
        return f"Error: Unable to get weather data for ({latitude}, {longitude}). {str(e)}"


@mcp.tool()
def describe_weather_code(code: int) -> str:
    """
    Translate a WMO weather code into a condition description

    Args:
        code: Weather code as reported by Open-Meteo
    """
    return describe(code)


# Prompts
@mcp.prompt()
def weather_interpretation(raw_data: Dict[str, Any]) -> str:
    """Help interpret current weather data"""
    return f"""Please analyze this weather data from Open-Meteo and provide:
        1. A clear summary of current conditions
        2. Whether the conditions are comfortable to be outside in
        3. Relevant clothing advice based on the conditions

        Location: {raw_data.get("location_label", "Unknown location")}
        Observed at: {raw_data.get("last_updated", "Unknown time")}

        Current conditions:
        - Condition: {raw_data.get("description", "N/A")}
        - Temperature: {raw_data.get("temperature", "N/A")}°C
        - Humidity: {raw_data.get("humidity", "N/A")}%
        - Wind Speed: {raw_data.get("wind_speed", "N/A")} km/h
        """


def main() -> None:
    load_dotenv()
    setup_logging()
    mcp.run()


if __name__ == "__main__":
    main()
