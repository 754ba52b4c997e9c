import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LocationCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    region: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @property
    def display_name(self) -> str:
        if self.region.strip():
            return f"{self.name} - {self.region}"
        return self.name


class WeatherReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature_c: float
    humidity_percent: int
    wind_speed_kmh: float
    condition_code: int
    observed_at: str = ""

    @field_validator("humidity_percent", mode="before")
    @classmethod
    def truncate_humidity(cls, value):
        # The API reports whole percentages, but tolerate a fractional value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("humidity must be a finite number")
            return int(value)
        return value


class DisplayWeather(BaseModel):
    model_config = ConfigDict(frozen=True)

    location_label: str
    temperature: float
    humidity: int
    wind_speed: float
    description: str
    last_updated: str

    def summary(self) -> str:
        """Render the weather card as plain text lines"""
        return "\n".join(
            [
                self.location_label,
                self.description,
                f"{self.temperature:.1f}°C",
                f"Humidity: {self.humidity}%",
                f"Wind: {self.wind_speed:.1f} km/h",
                f"Last updated: {self.last_updated}",
            ]
        )


class ResolverState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    RESOLVING = "resolving"
    AWAITING_SELECTION = "awaiting_selection"
    FETCHING = "fetching"
    DONE = "done"
    FAILED = "failed"


class SearchResult(BaseModel):
    """Outcome of a search: either fetched weather or candidates to pick from"""

    model_config = ConfigDict(frozen=True)

    weather: Optional[DisplayWeather] = None
    candidates: List[LocationCandidate] = Field(default_factory=list)

    @property
    def needs_selection(self) -> bool:
        return self.weather is None and len(self.candidates) > 1


class WeatherState(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ResolverState = ResolverState.IDLE
    selected: Optional[LocationCandidate] = None
    candidates: List[LocationCandidate] = Field(default_factory=list)
    weather: Optional[DisplayWeather] = None
    info_message: Optional[str] = None
    error_message: Optional[str] = None
    loading: bool = False
