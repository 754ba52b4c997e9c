import asyncio
import logging
import re
from datetime import datetime
from functools import partial
from typing import Awaitable, Callable, List, Optional

from openmeteo_weather_mcp.codes import describe
from openmeteo_weather_mcp.config import config
from openmeteo_weather_mcp.errors import (
    InvalidInputError,
    LocationUnavailableError,
    NoResultsError,
    WeatherError,
)
from openmeteo_weather_mcp.forecast import ForecastClient
from openmeteo_weather_mcp.location import GeocodingClient, candidate_from_coordinates, parse_coordinates
from openmeteo_weather_mcp.models import (
    Coordinates,
    DisplayWeather,
    LocationCandidate,
    ResolverState,
    SearchResult,
    WeatherReading,
    WeatherState,
)
from openmeteo_weather_mcp.refresh import AutoRefresher

logger = logging.getLogger("openmeteo_weather.service")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

# Extended ISO 8601 date and time, offset optional
ISO_DATETIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:\d{2})?", re.ASCII)

SELECTED_MESSAGE = "Selected location: {}"
SELECTION_NEEDED_MESSAGE = "Multiple locations found. Select one to see the weather."

LocationProvider = Callable[[], Awaitable[Optional[Coordinates]]]
StateListener = Callable[[WeatherState], None]


def format_timestamp(raw: str, now: Optional[datetime] = None) -> str:
    """Render an observation time as "YYYY-MM-DD HH:MM"

    Timestamps with an offset are converted to the local time zone, naive
    ones are shown as they are. Only "YYYY-MM-DDTHH:MM[:SS[.fff]]" with an
    optional offset is accepted; anything else, date-only values included,
    is passed through. An empty value falls back to the current time.
    """
    if not raw or not raw.strip():
        return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)

    text = raw.strip()
    if not ISO_DATETIME_PATTERN.fullmatch(text):
        return raw

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return raw

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime(TIMESTAMP_FORMAT)


class WeatherService:
    """Resolves user input to a location and loads its current weather

    The latest published state is available as ``state`` and pushed to
    subscribers. When operations overlap the most recently started one wins:
    results of superseded operations are returned to their caller but never
    published.
    """

    def __init__(
        self,
        geocoder: Optional[GeocodingClient] = None,
        forecaster: Optional[ForecastClient] = None,
        language: Optional[str] = None,
        auto_refresh: bool = False,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.geocoder = geocoder or GeocodingClient()
        self.forecaster = forecaster or ForecastClient()
        self.language = language or config.language
        self._clock = clock
        self._state = WeatherState()
        self._listeners: List[StateListener] = []
        self._generation = 0
        self._refresher: Optional[AutoRefresher] = None
        if auto_refresh:
            interval = refresh_interval or config.refresh_interval_minutes * 60
            self._refresher = AutoRefresher(partial(self.refresh, show_loading=False), interval)

    @property
    def state(self) -> WeatherState:
        return self._state

    @property
    def auto_refreshing(self) -> bool:
        return self._refresher is not None and self._refresher.running

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def search(self, text: str) -> SearchResult:
        """Resolve free text or "lat, lon" input and fetch its weather

        When the text matches several places, the candidates are returned and
        the service waits in AWAITING_SELECTION for ``select``.
        """
        generation = self._begin()
        self._stop_refresh()
        self._publish(generation, state=ResolverState.PARSING, error_message=None)

        try:
            query = text.strip() if text else ""
            if not query:
                raise InvalidInputError()

            logger.info(f"=== Weather lookup for '{query}' ===")
            candidate = parse_coordinates(query)
            if candidate is not None:
                logger.info(f"Input parsed as coordinates ({candidate.latitude}, {candidate.longitude})")
            else:
                logger.info("Step 1: Geocoding input")
                self._publish(generation, state=ResolverState.RESOLVING, loading=True)
                candidates = await self.geocoder.search(query, self.language)

                if not candidates:
                    raise NoResultsError()
                if len(candidates) > 1:
                    logger.info(f"{len(candidates)} candidates found, waiting for selection")
                    self._publish(
                        generation,
                        state=ResolverState.AWAITING_SELECTION,
                        selected=None,
                        candidates=candidates,
                        weather=None,
                        info_message=SELECTION_NEEDED_MESSAGE,
                        error_message=None,
                        loading=False,
                    )
                    return SearchResult(candidates=candidates)
                candidate = candidates[0]
        except asyncio.CancelledError:
            self._cancel(generation)
            raise
        except Exception as e:
            self._fail(generation, e, clear_selection=True)
            raise

        weather = await self._select(generation, candidate)
        return SearchResult(weather=weather)

    async def select(self, candidate: LocationCandidate) -> DisplayWeather:
        """Choose a location, typically one of the pending candidates"""
        generation = self._begin()
        return await self._select(generation, candidate)

    async def refresh(self, show_loading: bool = True) -> DisplayWeather:
        """Fetch the weather again for the selected location without re-resolving it"""
        selected = self._state.selected
        if selected is None:
            raise InvalidInputError("No location selected.")
        generation = self._begin()
        return await self._fetch(generation, selected, show_loading)

    async def use_device_location(self, provider: LocationProvider, timeout: float = 10.0) -> DisplayWeather:
        """Select the position reported by a device location provider

        The provider may return None when the location is unavailable or
        access was denied; it is cancelled if it does not answer in time.
        """
        generation = self._begin()
        self._stop_refresh()
        self._publish(generation, state=ResolverState.RESOLVING, loading=True, error_message=None)

        try:
            try:
                coords = await asyncio.wait_for(provider(), timeout)
            except asyncio.TimeoutError as e:
                raise LocationUnavailableError("Timed out waiting for the current location.") from e
            except LocationUnavailableError:
                raise
            except Exception as e:
                logger.error(f"Location provider failed: {str(e)}")
                raise LocationUnavailableError() from e
            if coords is None:
                raise LocationUnavailableError()
        except asyncio.CancelledError:
            self._cancel(generation)
            raise
        except Exception as e:
            self._fail(generation, e, clear_selection=True)
            raise

        return await self._select(generation, candidate_from_coordinates(coords))

    def close(self) -> None:
        """Stop auto refresh; the service stays usable"""
        self._stop_refresh()

    async def _select(self, generation: int, candidate: LocationCandidate) -> DisplayWeather:
        logger.info(f"Selected location {candidate.display_name}")
        if generation == self._generation and self._refresher is not None:
            self._refresher.restart()
        return await self._fetch(
            generation,
            candidate,
            show_loading=True,
            selected=candidate,
            candidates=[],
            info_message=SELECTED_MESSAGE.format(candidate.display_name),
            error_message=None,
        )

    async def _fetch(
        self, generation: int, candidate: LocationCandidate, show_loading: bool, **changes
    ) -> DisplayWeather:
        logger.info(f"Step 2: Fetching weather for {candidate.display_name}")
        if show_loading:
            changes["loading"] = True
        self._publish(generation, state=ResolverState.FETCHING, **changes)

        try:
            reading = await self.forecaster.fetch_current(candidate.latitude, candidate.longitude)
        except asyncio.CancelledError:
            self._cancel(generation)
            raise
        except Exception as e:
            self._fail(generation, e, clear_selection=False)
            raise

        weather = self._compose(reading, candidate)
        self._publish(
            generation,
            state=ResolverState.DONE,
            weather=weather,
            info_message=SELECTED_MESSAGE.format(candidate.display_name),
            error_message=None,
            loading=False,
        )
        logger.info(f"Weather updated for {candidate.display_name}")
        return weather

    def _compose(self, reading: WeatherReading, candidate: LocationCandidate) -> DisplayWeather:
        return DisplayWeather(
            location_label=candidate.display_name,
            temperature=reading.temperature_c,
            humidity=reading.humidity_percent,
            wind_speed=reading.wind_speed_kmh,
            description=describe(reading.condition_code),
            last_updated=format_timestamp(reading.observed_at, self._clock()),
        )

    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def _publish(self, generation: int, **changes) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding update from superseded request {generation}")
            return False
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self._state)
        return True

    def _fail(self, generation: int, error: Exception, clear_selection: bool) -> None:
        message = str(error) if isinstance(error, WeatherError) else WeatherError.default_message
        logger.error(f"Weather lookup failed: {message}")
        changes = {
            "state": ResolverState.FAILED,
            "candidates": [],
            "weather": None,
            "info_message": None,
            "error_message": message,
            "loading": False,
        }
        if clear_selection:
            changes["selected"] = None
        self._publish(generation, **changes)

    def _cancel(self, generation: int) -> None:
        """Settle the state of a cancelled operation; the last weather, if any, stays shown"""
        logger.info("Weather lookup cancelled")
        settled = ResolverState.DONE if self._state.weather is not None else ResolverState.IDLE
        self._publish(generation, state=settled, loading=False)

    def _stop_refresh(self) -> None:
        if self._refresher is not None:
            self._refresher.stop()
