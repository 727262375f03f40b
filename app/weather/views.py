"""Weather API routes."""

from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.exceptions import BadRequestException, NotFoundException
from app.weather.alerts import synthesize_alerts, synthesize_forecast_alerts
from app.weather.models import (
    Alert,
    Coordinates,
    DailyForecastEntry,
    DailyWeatherSummary,
    EvaluateRequest,
    EvaluateResponse,
    Observation,
    Recommendation,
    WeatherDashboardResponse,
)
from app.weather.recommendations import recommend
from app.weather.service import WeatherService

router = APIRouter(prefix="/weather", tags=["Weather"])


@lru_cache
def get_weather_service() -> WeatherService:
    return WeatherService()


@router.get("/geocode", response_model=Coordinates)
async def geocode(
    location: str = Query(..., min_length=1),
    service: WeatherService = Depends(get_weather_service),
):
    """Resolve a district or city name to coordinates."""
    coords = await service.resolve_location(location)
    if coords is None:
        raise NotFoundException(f"Location '{location}' not found. Please check the name.")
    return coords


@router.get("/current", response_model=Observation)
async def get_current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_current_observation(lat, lon)


@router.get("/forecast", response_model=List[DailyForecastEntry])
async def get_forecast(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    days: int = Query(5, ge=1, le=5),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_forecast(lat, lon, days=days)


@router.get("/daily-summary", response_model=List[DailyWeatherSummary])
async def get_daily_summary(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    days: int = Query(5, ge=1, le=5),
    service: WeatherService = Depends(get_weather_service),
):
    """Per-day temperature range, rainfall (mm), humidity and wind."""
    return await service.get_daily_summaries(lat, lon, days=days)


@router.get("/alerts", response_model=List[Alert])
async def get_alerts(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    service: WeatherService = Depends(get_weather_service),
):
    """Current-condition alerts (official or derived) plus daily forecast alerts."""
    return await service.get_alerts(lat, lon)


@router.get("/recommendations", response_model=List[Recommendation])
async def get_recommendations(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    service: WeatherService = Depends(get_weather_service),
):
    observation = await service.get_current_observation(lat, lon)
    forecast = await service.get_forecast(lat, lon)
    return recommend(observation, forecast)


@router.get("/dashboard", response_model=WeatherDashboardResponse)
async def get_dashboard(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    location: Optional[str] = None,
    service: WeatherService = Depends(get_weather_service),
):
    """
    Everything the weather screen needs in one call.

    Pass either `lat` and `lon`, or a `location` name to geocode.
    """
    if lat is None or lon is None:
        if not location:
            raise BadRequestException("Provide lat and lon, or a location name.")
        coords = await service.resolve_location(location)
        if coords is None:
            raise NotFoundException(f"Location '{location}' not found. Please check the name.")
        lat, lon = coords.lat, coords.lon

    return await service.get_dashboard(lat, lon)


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(payload: EvaluateRequest):
    """Run the alert and recommendation rules on caller-supplied weather."""
    return EvaluateResponse(
        alerts=synthesize_alerts(payload.observation) + synthesize_forecast_alerts(payload.daily_summaries),
        recommendations=recommend(payload.observation, payload.forecast),
    )
