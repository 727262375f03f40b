"""Weather-related models and schemas."""

import datetime as dt
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class AlertType(str, Enum):
    """Kinds of weather alert."""
    WARNING = "warning"
    WATCH = "watch"
    ADVISORY = "advisory"


class AlertSeverity(str, Enum):
    """Alert intensity tiers."""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    EXTREME = "extreme"


class RecommendationType(str, Enum):
    """Farming activity a recommendation is about."""
    IRRIGATION = "irrigation"
    PLANTING = "planting"
    HARVESTING = "harvesting"
    PESTICIDE = "pesticide"
    FERTILIZER = "fertilizer"


class Urgency(str, Enum):
    """Recommendation priority tiers."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Coordinates(BaseModel):
    """A resolved point on the map."""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None


class Observation(BaseModel):
    """Current weather snapshot."""
    location: str
    temperature: float = Field(..., description="Air temperature (°C)")
    feels_like: float = Field(..., description="Apparent temperature (°C)")
    humidity: float = Field(..., ge=0, le=100, description="Relative humidity (%)")
    wind_speed: float = Field(..., ge=0, description="Wind speed (m/s)")
    pressure: float = Field(..., gt=0, description="Sea-level pressure (hPa)")
    visibility: float = Field(..., ge=0, description="Visibility (km)")
    uv_index: float = Field(..., ge=0)
    description: str = ""
    icon: str = ""


class DailyForecastEntry(BaseModel):
    """One day of forecast."""
    date: dt.date
    high: float
    low: float
    precipitation: float = Field(..., ge=0, le=100, description="Probability of precipitation (%)")
    humidity: float = Field(..., ge=0, le=100)
    wind_speed: float = Field(..., ge=0)
    description: str = ""
    icon: str = ""


class DailyWeatherSummary(BaseModel):
    """Aggregate of one day's 3-hourly forecast slots."""
    date: dt.date
    avg_temp: float
    max_temp: float
    min_temp: float
    rainfall: float = Field(..., ge=0, description="Total rain (mm)")
    humidity: float = Field(..., ge=0, le=100, description="Mean humidity (%)")
    wind_speed: float = Field(..., ge=0, description="Mean wind speed (m/s)")
    description: str = ""


class Alert(BaseModel):
    """A severity-graded weather alert."""
    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    start_time: dt.datetime
    end_time: dt.datetime
    areas: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list, description="Suggested farm actions")


class Recommendation(BaseModel):
    """A farming action derived from the weather."""
    id: str = Field(..., description="Slug of the rule that produced it")
    type: RecommendationType
    title: str
    description: str
    urgency: Urgency
    weather_reason: str
    action_by: Optional[str] = None


class EvaluateRequest(BaseModel):
    """Caller-supplied weather to run the rules against."""
    observation: Observation
    forecast: List[DailyForecastEntry] = Field(default_factory=list)
    daily_summaries: List[DailyWeatherSummary] = Field(default_factory=list)


class EvaluateResponse(BaseModel):
    """Alerts and recommendations for one evaluation."""
    alerts: List[Alert] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)


class WeatherDashboardResponse(BaseModel):
    """Response schema for the weather dashboard endpoint."""
    observation: Observation
    forecast: List[DailyForecastEntry] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    daily_summaries: List[DailyWeatherSummary] = Field(default_factory=list)
    fetched_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
