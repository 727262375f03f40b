"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App
    APP_NAME: str = "Farm Weather Advisor API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # OpenWeatherMap
    OPENWEATHER_API_KEY: str = ""
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"
    OPENWEATHER_ONECALL_URL: str = "https://api.openweathermap.org/data/2.5/onecall"
    OPENWEATHER_GEO_URL: str = "https://api.openweathermap.org/geo/1.0"
    WEATHER_HTTP_TIMEOUT: float = 10.0
    
    # Advisory output
    FORECAST_DAYS: int = 5
    DEFAULT_ALERT_AREA: str = "Your Area"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"



@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
