from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="OPENMETEO_", extra="ignore")
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    request_timeout: float = 5.0
    language: str = "en"
    search_limit: int = 6
    refresh_interval_minutes: int = 5
    port: int = 8001


config = Config()
