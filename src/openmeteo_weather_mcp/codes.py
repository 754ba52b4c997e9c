"""WMO weather interpretation codes as reported by Open-Meteo."""

UNKNOWN = "Unknown"

WEATHER_CODES = {
    0: "Clear sky",
    1: "Mostly clear",
    2: "Mostly clear",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    56: "Freezing drizzle",
    57: "Freezing drizzle",
    61: "Rain",
    63: "Rain",
    65: "Rain",
    66: "Freezing rain",
    67: "Freezing rain",
    71: "Snow",
    73: "Snow",
    75: "Snow",
    77: "Snow grains",
    80: "Rain showers",
    81: "Rain showers",
    82: "Rain showers",
    85: "Snow showers",
    86: "Snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}


def describe(code: int) -> str:
    """Translate a weather code into a human readable condition"""
    if isinstance(code, bool) or not isinstance(code, int):
        return UNKNOWN
    return WEATHER_CODES.get(code, UNKNOWN)
