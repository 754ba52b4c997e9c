import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from openmeteo_weather_mcp.errors import WeatherError

logger = logging.getLogger("openmeteo_weather.refresh")


class AutoRefresher:
    """Re-runs a refresh callback on a fixed interval until stopped

    Each refresh is awaited before the next sleep starts, so refreshes never
    overlap even when the interval is shorter than the request latency.
    """

    def __init__(self, refresh: Callable[[], Awaitable[Any]], interval: float):
        if interval <= 0:
            raise ValueError("Refresh interval must be positive")
        self.interval = interval
        self._refresh = refresh
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def restart(self) -> None:
        """Start the timer from zero, cancelling any running one"""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Auto refresh scheduled every {self.interval} seconds")

    def stop(self) -> None:
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug("Auto refresh stopped")
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._refresh()
            except WeatherError as e:
                # Keep the timer alive, the next tick may succeed
                logger.warning(f"Scheduled refresh failed: {str(e)}")
            except Exception:
                logger.exception("Unexpected error during scheduled refresh")
