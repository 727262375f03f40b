"""Fixed baseline weather served when OpenWeatherMap is unavailable."""

from datetime import date, timedelta
from typing import List, Optional

from app.weather.models import DailyForecastEntry, DailyWeatherSummary, Observation

# (high, low, humidity, wind_speed, precipitation, rain_mm, description, icon)
_FORECAST_PATTERN = [
    (30, 20, 65, 2.5, 20, 0.0, "partly cloudy", "02d"),
    (32, 21, 60, 3.0, 10, 0.0, "sunny", "01d"),
    (29, 19, 70, 3.5, 20, 2.5, "light rain", "10d"),
    (28, 18, 75, 4.0, 15, 0.5, "cloudy", "03d"),
    (31, 20, 65, 2.0, 15, 0.0, "partly cloudy", "02d"),
]


def fallback_observation() -> Observation:
    return Observation(
        location="Unknown Location",
        temperature=25,
        feels_like=27,
        humidity=65,
        wind_speed=2.5,
        pressure=1013,
        visibility=10,
        uv_index=5,
        description="partly cloudy",
        icon="02d",
    )


def fallback_forecast(days: int = 5, today: Optional[date] = None) -> List[DailyForecastEntry]:
    """
    Plausible daily forecast starting today.

    Five days of the pattern sum to 80% precipitation, which keeps every
    forecast-based recommendation quiet.
    """
    start = today or date.today()
    entries = []
    for i in range(days):
        high, low, humidity, wind, precip, _, description, icon = _FORECAST_PATTERN[i % len(_FORECAST_PATTERN)]
        entries.append(DailyForecastEntry(
            date=start + timedelta(days=i),
            high=high,
            low=low,
            precipitation=precip,
            humidity=humidity,
            wind_speed=wind,
            description=description,
            icon=icon,
        ))
    return entries


def fallback_daily_summaries(days: int = 5, today: Optional[date] = None) -> List[DailyWeatherSummary]:
    """Daily aggregates matching fallback_forecast(); no forecast alert fires on them."""
    start = today or date.today()
    summaries = []
    for i in range(days):
        high, low, humidity, wind, _, rain_mm, description, _ = _FORECAST_PATTERN[i % len(_FORECAST_PATTERN)]
        summaries.append(DailyWeatherSummary(
            date=start + timedelta(days=i),
            avg_temp=(high + low) / 2,
            max_temp=high,
            min_temp=low,
            rainfall=rain_mm,
            humidity=humidity,
            wind_speed=wind,
            description=description,
        ))
    return summaries
