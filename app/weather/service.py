"""Weather service using OpenWeatherMap API."""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import httpx

from app.core.config import get_settings
from app.weather.alerts import parse_upstream_alerts, synthesize_alerts, synthesize_forecast_alerts
from app.weather.fallback import fallback_daily_summaries, fallback_forecast, fallback_observation
from app.weather.models import (
    Alert,
    Coordinates,
    DailyForecastEntry,
    DailyWeatherSummary,
    Observation,
    WeatherDashboardResponse,
)
from app.weather.recommendations import recommend

logger = logging.getLogger(__name__)
settings = get_settings()


# Indian cities and farming hubs with their coordinates for better accuracy
INDIAN_CITIES = {
    "mumbai": {"lat": 19.076, "lon": 72.8777},
    "delhi": {"lat": 28.6139, "lon": 77.209},
    "bangalore": {"lat": 12.9716, "lon": 77.5946},
    "bengaluru": {"lat": 12.9716, "lon": 77.5946},
    "chennai": {"lat": 13.0827, "lon": 80.2707},
    "kolkata": {"lat": 22.5726, "lon": 88.3639},
    "hyderabad": {"lat": 17.385, "lon": 78.4867},
    "pune": {"lat": 18.5204, "lon": 73.8567},
    "ahmedabad": {"lat": 23.0225, "lon": 72.5714},
    "jaipur": {"lat": 26.9124, "lon": 75.7873},
    "lucknow": {"lat": 26.8467, "lon": 80.9462},
    "chandigarh": {"lat": 30.7333, "lon": 76.7794},
    "nashik": {"lat": 19.9975, "lon": 73.7898},
    "nagpur": {"lat": 21.1458, "lon": 79.0882},
    "ludhiana": {"lat": 30.901, "lon": 75.8573},
    "indore": {"lat": 22.7196, "lon": 75.8577},
    "coimbatore": {"lat": 11.0168, "lon": 76.9558},
    "guntur": {"lat": 16.3067, "lon": 80.4365},
}


# The forecast endpoint returns 3-hourly slots
SLOTS_PER_DAY = 8


def _round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


class WeatherService:
    """Fetches observations, forecasts and alerts, falling back to baseline data."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        onecall_url: Optional[str] = None,
        geo_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.OPENWEATHER_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.onecall_url = onecall_url or settings.OPENWEATHER_ONECALL_URL
        self.geo_url = geo_url or settings.OPENWEATHER_GEO_URL
        self.timeout = timeout or settings.WEATHER_HTTP_TIMEOUT
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _params(self, lat: float, lon: float, **extra) -> dict:
        return {"lat": lat, "lon": lon, "appid": self.api_key, **extra}

    async def get_current_observation(self, lat: float, lon: float) -> Observation:
        """Current conditions plus UV index; baseline observation on any failure."""
        if not self.api_key:
            logger.warning("OPENWEATHER_API_KEY not configured; serving fallback observation")
            return fallback_observation()

        try:
            async with self._client() as client:
                weather_response, uv_response = await asyncio.gather(
                    client.get(f"{self.base_url}/weather", params=self._params(lat, lon, units="metric")),
                    client.get(f"{self.base_url}/uvi", params=self._params(lat, lon)),
                    return_exceptions=True,
                )

            if isinstance(weather_response, Exception):
                raise weather_response
            weather_response.raise_for_status()
            data = weather_response.json()
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object for current weather, got {type(data).__name__}")

            uv_value = 0.0
            if isinstance(uv_response, httpx.Response) and uv_response.is_success:
                uv_data = uv_response.json()
                if isinstance(uv_data, dict):
                    uv_value = uv_data.get("value") or 0.0
            else:
                logger.info(f"UV index unavailable for ({lat}, {lon}); using 0")

            return self._parse_observation(data, uv_value)

        except (httpx.HTTPError, AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Failed to fetch current weather for ({lat}, {lon}): {e}")
            return fallback_observation()

    def _parse_observation(self, data: dict, uv_value: float) -> Observation:
        visibility_m = data.get("visibility")
        return Observation(
            location=f"{data['name']}, {data['sys']['country']}",
            temperature=_round_half_up(data["main"]["temp"]),
            feels_like=_round_half_up(data["main"]["feels_like"]),
            humidity=data["main"]["humidity"],
            wind_speed=_round_half_up(data["wind"]["speed"], 1),
            description=data["weather"][0]["description"],
            icon=data["weather"][0]["icon"],
            pressure=data["main"]["pressure"],
            visibility=_round_half_up(visibility_m / 1000, 1) if visibility_m else 10,
            uv_index=_round_half_up(float(uv_value), 1),
        )

    async def _fetch_forecast_slots(self, lat: float, lon: float) -> List[dict]:
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/forecast",
                params=self._params(lat, lon, units="metric"),
            )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("list"), list):
            raise ValueError("Forecast payload has no 'list' of slots")
        return data["list"]

    async def get_forecast_bundle(
        self,
        lat: float,
        lon: float,
        days: Optional[int] = None,
    ) -> Tuple[List[DailyForecastEntry], List[DailyWeatherSummary]]:
        """
        Daily forecast entries and daily aggregates from one forecast request.

        Either half falls back to baseline data on its own when its parsing
        fails; both do when the request itself fails.
        """
        days = days or settings.FORECAST_DAYS
        if not self.api_key:
            logger.warning("OPENWEATHER_API_KEY not configured; serving fallback forecast")
            return fallback_forecast(days), fallback_daily_summaries(days)

        try:
            slots = await self._fetch_forecast_slots(lat, lon)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch forecast for ({lat}, {lon}): {e}")
            return fallback_forecast(days), fallback_daily_summaries(days)

        try:
            forecast = self._parse_forecast(slots, days)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Malformed forecast for ({lat}, {lon}): {e}")
            forecast = fallback_forecast(days)

        try:
            summaries = self._aggregate_daily(slots, days)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Could not aggregate forecast for ({lat}, {lon}): {e}")
            summaries = fallback_daily_summaries(days)

        return forecast, summaries

    async def get_forecast(self, lat: float, lon: float, days: Optional[int] = None) -> List[DailyForecastEntry]:
        """One entry per calendar day from the 3-hourly forecast; baseline on failure."""
        forecast, _ = await self.get_forecast_bundle(lat, lon, days)
        return forecast

    async def get_daily_summaries(
        self, lat: float, lon: float, days: Optional[int] = None
    ) -> List[DailyWeatherSummary]:
        """Per-day aggregates of the 3-hourly forecast; baseline on failure."""
        _, summaries = await self.get_forecast_bundle(lat, lon, days)
        return summaries

    def _parse_forecast(self, slots: List[dict], days: int) -> List[DailyForecastEntry]:
        daily: List[DailyForecastEntry] = []
        seen_dates = set()

        for item in slots:
            day = datetime.fromtimestamp(item["dt"], tz=timezone.utc).date()
            if day in seen_dates:
                continue
            seen_dates.add(day)
            daily.append(DailyForecastEntry(
                date=day,
                high=_round_half_up(item["main"]["temp_max"]),
                low=_round_half_up(item["main"]["temp_min"]),
                description=item["weather"][0]["description"],
                icon=item["weather"][0]["icon"],
                humidity=item["main"]["humidity"],
                wind_speed=item["wind"]["speed"],
                # pop is a 0-1 probability
                precipitation=_round_half_up(float(item.get("pop", 0)) * 100, 1),
            ))
            if len(daily) >= days:
                break

        return daily

    def _aggregate_daily(self, slots: List[dict], days: int) -> List[DailyWeatherSummary]:
        # Consecutive runs of 8 three-hourly slots, dated by their first slot.
        slots = slots[:days * SLOTS_PER_DAY]
        summaries: List[DailyWeatherSummary] = []

        for i in range(0, len(slots), SLOTS_PER_DAY):
            chunk = slots[i:i + SLOTS_PER_DAY]
            count = len(chunk)
            summaries.append(DailyWeatherSummary(
                date=datetime.fromtimestamp(chunk[0]["dt"], tz=timezone.utc).date(),
                avg_temp=sum(s["main"]["temp"] for s in chunk) / count,
                max_temp=max(s["main"]["temp_max"] for s in chunk),
                min_temp=min(s["main"]["temp_min"] for s in chunk),
                rainfall=sum((s.get("rain") or {}).get("3h", 0) for s in chunk),
                humidity=sum(s["main"]["humidity"] for s in chunk) / count,
                wind_speed=sum(s["wind"]["speed"] for s in chunk) / count,
                description=chunk[0]["weather"][0]["description"],
            ))

        return summaries

    async def get_alerts(
        self,
        lat: float,
        lon: float,
        observation: Optional[Observation] = None,
        summaries: Optional[List[DailyWeatherSummary]] = None,
    ) -> List[Alert]:
        """
        Current-condition alerts followed by daily forecast alerts.

        Current-condition alerts are the upstream ones when OpenWeatherMap
        issues any; otherwise they are synthesized from the observation.
        The observation and daily summaries are fetched unless passed in.
        """
        alerts = await self._current_alerts(lat, lon, observation)

        if summaries is None:
            summaries = await self.get_daily_summaries(lat, lon)
        return alerts + synthesize_forecast_alerts(summaries)

    async def _current_alerts(
        self,
        lat: float,
        lon: float,
        observation: Optional[Observation],
    ) -> List[Alert]:
        if self.api_key:
            try:
                async with self._client() as client:
                    response = await client.get(
                        self.onecall_url,
                        params=self._params(lat, lon, exclude="minutely,hourly,daily"),
                    )
                if response.is_success:
                    upstream = parse_upstream_alerts(response.json())
                    if upstream:
                        logger.info(f"Received {len(upstream)} upstream alert(s) for ({lat}, {lon})")
                        return upstream
                else:
                    logger.info(f"Alert API returned {response.status_code}; synthesizing alerts")
            except (httpx.HTTPError, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to fetch weather alerts for ({lat}, {lon}): {e}")

        if observation is None:
            observation = await self.get_current_observation(lat, lon)
        return synthesize_alerts(observation)

    async def resolve_location(self, location: str) -> Optional[Coordinates]:
        """Coordinates for a place name, or None when it can't be found."""
        location_lower = (location or "").lower().strip()
        if not location_lower:
            return None

        coords = INDIAN_CITIES.get(location_lower)
        if coords:
            return Coordinates(lat=coords["lat"], lon=coords["lon"], name=location_lower.title())

        if not self.api_key:
            logger.warning(f"Cannot geocode '{location}' without OPENWEATHER_API_KEY")
            return None

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.geo_url}/direct",
                    params={"q": location, "limit": 1, "appid": self.api_key},
                )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, list):
                logger.info(f"Geocoding for '{location}' returned {type(data).__name__}, not a list")
                return None
            if not data:
                return None
            match = data[0]
            return Coordinates(lat=match["lat"], lon=match["lon"], name=match.get("name"))
        except (httpx.HTTPError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Geocoding failed for '{location}': {e}")
            return None

    async def get_dashboard(self, lat: float, lon: float) -> WeatherDashboardResponse:
        """Observation, forecast, alerts and recommendations in one response."""
        observation, (forecast, summaries) = await asyncio.gather(
            self.get_current_observation(lat, lon),
            self.get_forecast_bundle(lat, lon),
        )
        alerts = await self.get_alerts(lat, lon, observation=observation, summaries=summaries)

        return WeatherDashboardResponse(
            observation=observation,
            forecast=forecast,
            daily_summaries=summaries,
            alerts=alerts,
            recommendations=recommend(observation, forecast),
        )
