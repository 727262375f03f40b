"""Weather alert synthesis.

Builds severity-graded alerts from a single observation when the upstream
alerting API has none, and maps upstream One Call alerts onto the same shape.
Daily forecast aggregates get their own farming alerts (rain, heat, frost,
disease risk), each covering one UTC day.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence

from app.core.config import get_settings
from app.weather.models import Alert, AlertSeverity, AlertType, DailyWeatherSummary, Observation

logger = logging.getLogger(__name__)
settings = get_settings()

HIGH_TEMP_THRESHOLD = 35
EXTREME_TEMP_THRESHOLD = 40
HIGH_HUMIDITY_THRESHOLD = 85
STRONG_WIND_THRESHOLD = 8
SEVERE_WIND_THRESHOLD = 12

# Daily forecast thresholds (mm of rain, °C, %)
HEAVY_RAIN_MM = 25
VERY_HEAVY_RAIN_MM = 50
FORECAST_HEAT_THRESHOLD = 38
FORECAST_EXTREME_HEAT_THRESHOLD = 42
FROST_THRESHOLD = 5
HARD_FROST_THRESHOLD = 2
DISEASE_HUMIDITY_THRESHOLD = 80
DISEASE_TEMP_RANGE = (20, 30)


def fmt_value(value: float) -> str:
    """Render a reading without a trailing '.0'."""
    return f"{value:g}"


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def synthesize_alerts(
    observation: Observation,
    *,
    now: Optional[datetime] = None,
    areas: Optional[List[str]] = None,
) -> List[Alert]:
    """
    Generate alerts from current conditions.

    Every threshold is checked on its own, so heat, humidity and wind alerts
    can all be returned together. Ids carry the millisecond timestamp of `now`.
    """
    now_utc = _utc_now(now)
    stamp = int(now_utc.timestamp() * 1000)
    alert_areas = list(areas) if areas is not None else [settings.DEFAULT_ALERT_AREA]
    alerts: List[Alert] = []

    # Heat stress
    if observation.temperature > HIGH_TEMP_THRESHOLD:
        alerts.append(Alert(
            id=f"high_temp_{stamp}",
            type=AlertType.WARNING,
            severity=AlertSeverity.SEVERE if observation.temperature > EXTREME_TEMP_THRESHOLD else AlertSeverity.MODERATE,
            title="High Temperature Warning",
            description=(
                f"Temperature is {fmt_value(observation.temperature)}°C. "
                "Take precautions to protect crops and increase irrigation."
            ),
            start_time=now_utc,
            end_time=now_utc + timedelta(hours=24),
            areas=list(alert_areas),
        ))

    # Fungal risk
    if observation.humidity > HIGH_HUMIDITY_THRESHOLD:
        alerts.append(Alert(
            id=f"high_humidity_{stamp}",
            type=AlertType.ADVISORY,
            severity=AlertSeverity.MODERATE,
            title="High Humidity Advisory",
            description=(
                f"Humidity is {fmt_value(observation.humidity)}%. "
                "Monitor crops for fungal diseases and ensure proper ventilation."
            ),
            start_time=now_utc,
            end_time=now_utc + timedelta(hours=12),
            areas=list(alert_areas),
        ))

    # Lodging and spray drift
    if observation.wind_speed > STRONG_WIND_THRESHOLD:
        alerts.append(Alert(
            id=f"strong_wind_{stamp}",
            type=AlertType.WARNING,
            severity=AlertSeverity.SEVERE if observation.wind_speed > SEVERE_WIND_THRESHOLD else AlertSeverity.MODERATE,
            title="Strong Wind Alert",
            description=(
                f"Wind speed is {fmt_value(observation.wind_speed)} m/s. "
                "Secure tall crops and avoid spraying pesticides."
            ),
            start_time=now_utc,
            end_time=now_utc + timedelta(hours=8),
            areas=list(alert_areas),
        ))

    logger.debug(f"Synthesized {len(alerts)} alert(s) for {observation.location}")
    return alerts


def map_alert_type(event: str) -> AlertType:
    """Classify an upstream event name by the keyword it contains."""
    lowered = (event or "").lower()
    if "warning" in lowered:
        return AlertType.WARNING
    if "watch" in lowered:
        return AlertType.WATCH
    return AlertType.ADVISORY


def map_severity(tags: Optional[Iterable[str]] = None) -> AlertSeverity:
    """Pick the strongest severity tag, defaulting to minor."""
    tag_set = set(tags or [])
    if "Extreme" in tag_set:
        return AlertSeverity.EXTREME
    if "Severe" in tag_set:
        return AlertSeverity.SEVERE
    if "Moderate" in tag_set:
        return AlertSeverity.MODERATE
    return AlertSeverity.MINOR


def parse_upstream_alerts(payload: Any) -> List[Alert]:
    """Convert the One Call `alerts` array into Alert models."""
    if not isinstance(payload, dict):
        logger.info(f"Ignoring alert payload of type {type(payload).__name__}")
        return []
    alerts = []
    for raw in payload.get("alerts") or []:
        start = int(raw["start"])
        end = int(raw["end"])
        event = raw.get("event") or "Weather Alert"
        alerts.append(Alert(
            id=f"{raw.get('sender_name') or 'system'}{start}",
            type=map_alert_type(event),
            severity=map_severity(raw.get("tags")),
            title=event,
            description=raw.get("description") or "",
            start_time=datetime.fromtimestamp(start, tz=timezone.utc),
            end_time=datetime.fromtimestamp(end, tz=timezone.utc),
            areas=list(raw.get("areas") or []),
        ))
    return alerts


def _day_window(day: DailyWeatherSummary):
    start = datetime.combine(day.date, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(hours=23, minutes=59, seconds=59)


def synthesize_forecast_alerts(
    summaries: Sequence[DailyWeatherSummary],
    *,
    areas: Optional[List[str]] = None,
) -> List[Alert]:
    """
    Generate farming alerts from daily forecast aggregates.

    Each day is checked for heavy rain, heat, frost and fungal disease risk,
    in that order. Alerts cover the whole UTC day and carry suggested actions.
    """
    alert_areas = list(areas) if areas is not None else [settings.DEFAULT_ALERT_AREA]
    alerts: List[Alert] = []

    for day in summaries:
        start, end = _day_window(day)
        stamp = day.date.isoformat()

        if day.rainfall > HEAVY_RAIN_MM:
            alerts.append(Alert(
                id=f"forecast_heavy_rain_{stamp}",
                type=AlertType.WATCH,
                severity=AlertSeverity.SEVERE if day.rainfall > VERY_HEAVY_RAIN_MM else AlertSeverity.MODERATE,
                title="Heavy Rainfall Alert",
                description=(
                    f"Expected rainfall: {day.rainfall:.1f}mm. "
                    "Prepare drainage systems and delay irrigation."
                ),
                start_time=start,
                end_time=end,
                areas=list(alert_areas),
                actions=[
                    "Ensure proper drainage in fields",
                    "Delay irrigation activities",
                    "Protect stored crops from moisture",
                    "Apply fungicides if crops are susceptible to fungal diseases",
                ],
            ))

        if day.max_temp > FORECAST_HEAT_THRESHOLD:
            alerts.append(Alert(
                id=f"forecast_high_temp_{stamp}",
                type=AlertType.WATCH,
                severity=(
                    AlertSeverity.SEVERE if day.max_temp > FORECAST_EXTREME_HEAT_THRESHOLD
                    else AlertSeverity.MODERATE
                ),
                title="High Temperature Alert",
                description=(
                    f"Maximum temperature expected: {day.max_temp:.1f}°C. "
                    "Increase irrigation frequency."
                ),
                start_time=start,
                end_time=end,
                areas=list(alert_areas),
                actions=[
                    "Increase irrigation frequency",
                    "Provide shade for sensitive crops",
                    "Avoid mid-day field activities",
                    "Monitor crops for heat stress symptoms",
                ],
            ))

        if day.min_temp < FROST_THRESHOLD:
            alerts.append(Alert(
                id=f"forecast_frost_{stamp}",
                type=AlertType.WATCH,
                severity=AlertSeverity.SEVERE if day.min_temp < HARD_FROST_THRESHOLD else AlertSeverity.MODERATE,
                title="Frost Warning",
                description=(
                    f"Minimum temperature expected: {day.min_temp:.1f}°C. "
                    "Protect sensitive crops."
                ),
                start_time=start,
                end_time=end,
                areas=list(alert_areas),
                actions=[
                    "Cover sensitive crops with cloth or plastic",
                    "Light smudge pots if available",
                    "Harvest mature vegetables before frost",
                    "Water crops before evening to prevent frost damage",
                ],
            ))

        low, high = DISEASE_TEMP_RANGE
        if day.humidity > DISEASE_HUMIDITY_THRESHOLD and low < day.avg_temp < high:
            alerts.append(Alert(
                id=f"forecast_disease_risk_{stamp}",
                type=AlertType.ADVISORY,
                severity=AlertSeverity.MODERATE,
                title="Disease Risk Alert",
                description=(
                    f"High humidity ({day.humidity:.1f}%) with moderate temperature "
                    "increases disease risk."
                ),
                start_time=start,
                end_time=end,
                areas=list(alert_areas),
                actions=[
                    "Monitor crops for fungal diseases",
                    "Apply preventive fungicides",
                    "Ensure good air circulation",
                    "Avoid overhead irrigation",
                ],
            ))

    logger.debug(f"Synthesized {len(alerts)} forecast alert(s) over {len(summaries)} day(s)")
    return alerts
