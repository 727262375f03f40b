"""Farming recommendation engine.

A deterministic rules engine (no LLM calls) that turns the current
observation and a daily forecast into farming actions.

Each rule is a record in RULES and is evaluated in order. Every rule that
applies contributes one Recommendation; the only coupling between rules is
that moderate cumulative rain is skipped once heavy rain has fired.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Set

from app.weather.alerts import fmt_value
from app.weather.models import (
    DailyForecastEntry,
    Observation,
    Recommendation,
    RecommendationType,
    Urgency,
)

logger = logging.getLogger(__name__)

Forecast = Sequence[DailyForecastEntry]


def total_precipitation(forecast: Forecast) -> float:
    """Sum of daily precipitation probabilities (0 for an empty forecast)."""
    return float(sum(day.precipitation for day in forecast))


def max_precipitation(forecast: Forecast) -> float:
    """Highest daily precipitation probability (0 for an empty forecast)."""
    return float(max((day.precipitation for day in forecast), default=0))


@dataclass(frozen=True)
class RecommendationRule:
    id: str
    applies: Callable[[Observation, Forecast, Set[str]], bool]
    build: Callable[[Observation, Forecast], Recommendation]


# ---------------------------------------------------------------------------
# Current conditions
# ---------------------------------------------------------------------------

def _high_temp(obs: Observation, forecast: Forecast) -> Recommendation:
    extreme = obs.temperature > 40
    return Recommendation(
        id="high_temp_irrigation",
        type=RecommendationType.IRRIGATION,
        title="Increase Irrigation Frequency",
        description=(
            "High temperatures detected. Water crops early morning (5-7 AM) or late evening (6-8 PM) "
            "to minimize evaporation. Consider drip irrigation for water efficiency."
        ),
        urgency=Urgency.HIGH if extreme else Urgency.MEDIUM,
        weather_reason=(
            f"Current temperature: {fmt_value(obs.temperature)}°C "
            f"(Feels like {fmt_value(obs.feels_like)}°C)"
        ),
        action_by="Within 2 hours" if extreme else "Today",
    )


def _cold(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="cold_protection",
        type=RecommendationType.PLANTING,
        title="Cold Weather Protection",
        description=(
            "Low temperatures may damage sensitive crops. "
            "Cover young plants with cloth or plastic sheets overnight."
        ),
        urgency=Urgency.HIGH,
        weather_reason=f"Current temperature: {fmt_value(obs.temperature)}°C",
        action_by="Before sunset",
    )


def _high_humidity(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="high_humidity_disease_watch",
        type=RecommendationType.PESTICIDE,
        title="Monitor for Fungal Diseases",
        description=(
            "High humidity creates ideal conditions for fungal diseases like powdery mildew, rust, and blight. "
            "Inspect crops daily and apply preventive fungicides if needed."
        ),
        urgency=Urgency.MEDIUM,
        weather_reason=f"Current humidity: {fmt_value(obs.humidity)}%",
    )


def _low_humidity(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="low_humidity_stress",
        type=RecommendationType.IRRIGATION,
        title="Combat Low Humidity Stress",
        description=(
            "Very low humidity can stress plants. "
            "Increase irrigation frequency and consider mulching to retain soil moisture."
        ),
        urgency=Urgency.MEDIUM,
        weather_reason=f"Current humidity: {fmt_value(obs.humidity)}%",
    )


def _strong_wind(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="strong_wind_precautions",
        type=RecommendationType.HARVESTING,
        title="Strong Wind Precautions",
        description=(
            "Strong winds detected. Install windbreaks, stake tall plants, avoid spraying chemicals, "
            "and harvest mature fruits before they fall."
        ),
        urgency=Urgency.HIGH if obs.wind_speed > 12 else Urgency.MEDIUM,
        weather_reason=f"Wind speed: {fmt_value(obs.wind_speed)} m/s",
        action_by="Immediately",
    )


def _high_uv(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="high_uv_protection",
        type=RecommendationType.PLANTING,
        title="UV Protection Needed",
        description=(
            "High UV levels can damage sensitive crops. Provide shade cloths for delicate plants "
            "and avoid working in fields during peak hours (11 AM - 3 PM)."
        ),
        urgency=Urgency.MEDIUM,
        weather_reason=f"UV Index: {fmt_value(obs.uv_index)} (High)",
    )


# ---------------------------------------------------------------------------
# Forecast aggregates
# ---------------------------------------------------------------------------

def _heavy_rain(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="heavy_rain_prep",
        type=RecommendationType.IRRIGATION,
        title="Prepare for Heavy Rain",
        description=(
            "Heavy rainfall expected. Ensure proper drainage, reduce irrigation, harvest mature crops, "
            "and protect seedlings from waterlogging."
        ),
        urgency=Urgency.HIGH,
        weather_reason=f"Heavy rain forecasted ({fmt_value(max_precipitation(forecast))}% chance)",
        action_by="Before rain starts",
    )


def _cumulative_rain(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="rain_forecast_prep",
        type=RecommendationType.IRRIGATION,
        title="Adjust for Expected Rainfall",
        description=(
            f"Significant rain expected over next {len(forecast)} days. "
            "Reduce irrigation schedule and check drainage systems."
        ),
        urgency=Urgency.MEDIUM,
        weather_reason=(
            f"Total rain expected: {round(total_precipitation(forecast))}% over {len(forecast)} days"
        ),
    )


def _dry_spell(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="dry_weather_irrigation",
        type=RecommendationType.IRRIGATION,
        title="Increase Watering for Dry Spell",
        description=(
            "Little to no rain expected and low humidity. Increase watering frequency, "
            "apply mulch to retain moisture, and consider deep watering techniques."
        ),
        urgency=Urgency.MEDIUM,
        weather_reason=(
            f"Low rain forecast ({fmt_value(total_precipitation(forecast))}%) "
            f"and humidity ({fmt_value(obs.humidity)}%)"
        ),
    )


def _optimal(obs: Observation, forecast: Forecast) -> Recommendation:
    return Recommendation(
        id="optimal_conditions",
        type=RecommendationType.PLANTING,
        title="Ideal Conditions for Farm Work",
        description=(
            "Weather conditions are optimal for most farming activities including planting, spraying, "
            "and harvesting. Take advantage of these favorable conditions."
        ),
        urgency=Urgency.LOW,
        weather_reason=(
            f"Ideal temp ({fmt_value(obs.temperature)}°C), "
            f"humidity ({fmt_value(obs.humidity)}%), and calm winds"
        ),
    )


RULES = (
    RecommendationRule(
        "high_temp_irrigation",
        lambda obs, fc, fired: obs.temperature > 35,
        _high_temp,
    ),
    RecommendationRule(
        "cold_protection",
        lambda obs, fc, fired: obs.temperature < 10,
        _cold,
    ),
    RecommendationRule(
        "high_humidity_disease_watch",
        lambda obs, fc, fired: obs.humidity > 85,
        _high_humidity,
    ),
    RecommendationRule(
        "low_humidity_stress",
        lambda obs, fc, fired: obs.humidity < 30,
        _low_humidity,
    ),
    RecommendationRule(
        "strong_wind_precautions",
        lambda obs, fc, fired: obs.wind_speed > 8,
        _strong_wind,
    ),
    RecommendationRule(
        "high_uv_protection",
        lambda obs, fc, fired: obs.uv_index > 7,
        _high_uv,
    ),
    RecommendationRule(
        "heavy_rain_prep",
        lambda obs, fc, fired: any(day.precipitation > 70 for day in fc),
        _heavy_rain,
    ),
    # Must stay after heavy_rain_prep.
    RecommendationRule(
        "rain_forecast_prep",
        lambda obs, fc, fired: "heavy_rain_prep" not in fired and total_precipitation(fc) > 100,
        _cumulative_rain,
    ),
    RecommendationRule(
        "dry_weather_irrigation",
        lambda obs, fc, fired: total_precipitation(fc) < 20 and obs.humidity < 50,
        _dry_spell,
    ),
    RecommendationRule(
        "optimal_conditions",
        lambda obs, fc, fired: (
            20 <= obs.temperature <= 30
            and 40 <= obs.humidity <= 70
            and obs.wind_speed < 5
        ),
        _optimal,
    ),
)


def recommend(observation: Observation, forecast: Forecast) -> List[Recommendation]:
    """Evaluate every rule in order and collect the ones that apply."""
    forecast = list(forecast or [])
    fired: Set[str] = set()
    recommendations: List[Recommendation] = []

    for rule in RULES:
        if rule.applies(observation, forecast, fired):
            recommendations.append(rule.build(observation, forecast))
            fired.add(rule.id)

    logger.debug(f"Rules fired for {observation.location}: {sorted(fired)}")
    return recommendations
