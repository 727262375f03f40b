"""
Shared pytest fixtures for the Farm Weather Advisor test suite.

Provides:
  - ``make_observation``: factory for an Observation at a neutral baseline
    (25°C, humidity 55%, wind 3 m/s, UV 3) that no rule reacts to except
    optimal conditions; override single fields per test.
  - ``make_forecast``: factory for a forecast from a list of precipitation
    probabilities.
  - ``make_summary``: factory for a quiet DailyWeatherSummary (26°C mean,
    20-32°C, no rain, humidity 60%) that raises no forecast alert.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, List

import pytest

from app.weather.models import DailyForecastEntry, DailyWeatherSummary, Observation


NEUTRAL = dict(
    location="Test Farm, IN",
    temperature=25.0,
    feels_like=25.0,
    humidity=55.0,
    wind_speed=3.0,
    pressure=1013.0,
    visibility=10.0,
    uv_index=3.0,
    description="clear sky",
    icon="01d",
)


@pytest.fixture
def make_observation() -> Callable[..., Observation]:
    def _make(**overrides) -> Observation:
        return Observation(**{**NEUTRAL, **overrides})
    return _make


@pytest.fixture
def neutral_observation(make_observation) -> Observation:
    return make_observation()


@pytest.fixture
def make_forecast() -> Callable[[List[float]], List[DailyForecastEntry]]:
    def _make(precipitation: List[float]) -> List[DailyForecastEntry]:
        start = date(2024, 6, 1)
        return [
            DailyForecastEntry(
                date=start + timedelta(days=i),
                high=31,
                low=22,
                precipitation=p,
                humidity=60,
                wind_speed=3,
                description="cloudy",
                icon="03d",
            )
            for i, p in enumerate(precipitation)
        ]
    return _make


NEUTRAL_DAY = dict(
    date=date(2024, 6, 1),
    avg_temp=26.0,
    max_temp=32.0,
    min_temp=20.0,
    rainfall=0.0,
    humidity=60.0,
    wind_speed=3.0,
    description="clear sky",
)


@pytest.fixture
def make_summary() -> Callable[..., DailyWeatherSummary]:
    def _make(**overrides) -> DailyWeatherSummary:
        return DailyWeatherSummary(**{**NEUTRAL_DAY, **overrides})
    return _make
