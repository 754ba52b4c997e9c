"""Error taxonomy shared by the API clients and the weather service.

Every error carries a message that can be shown to a user as-is; ``str(error)``
is what the service records as its error message.
"""

from typing import Optional


class WeatherError(Exception):
    """Base class for all location and weather lookup failures"""

    default_message = "Unable to load weather data."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class InvalidInputError(WeatherError):
    default_message = "Enter a place name or coordinates."


class NetworkError(WeatherError):
    default_message = "Could not reach the weather service. Check your connection."


class RemoteError(WeatherError):
    """The remote API answered with a non-2xx status"""

    def __init__(self, status_code: int, reason: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        message = f"Weather service returned an error (HTTP {status_code})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedResponseError(WeatherError):
    default_message = "Received an unexpected response from the weather service."


class NoResultsError(WeatherError):
    default_message = "No matching locations found."


class LocationUnavailableError(WeatherError):
    default_message = "Current location is unavailable."
