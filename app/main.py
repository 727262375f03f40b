"""
Farm Weather Advisor API - Main application entry point.

Weather-driven farming guidance for Indian farmers.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.weather.views import router as weather_router

settings = get_settings()
API_PREFIX = "/api/v1"

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Farm Weather Advisor API

Turns live weather into actions a farmer can take today.

### Features

- 🌤️ **Current Conditions & Forecast**: OpenWeatherMap data with offline fallbacks
- ⚠️ **Weather Alerts**: Official alerts, or alerts derived from heat, humidity and wind
- 🌾 **Farming Recommendations**: Irrigation, disease watch, harvest and planting timing
- 📍 **Geocoding**: Look up districts and cities by name

    """,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(weather_router, prefix=API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "weather_api": "configured" if settings.OPENWEATHER_API_KEY else "fallback",
        "version": settings.APP_VERSION,
    }
