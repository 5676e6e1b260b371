"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cavok import __version__
from cavok.collectors.aviationweather import AviationWeatherClient
from cavok.config import get_settings
from cavok.database import async_session_maker, close_db, init_db
from cavok.routers import (
    health_router,
    metrics_router,
    observations_router,
    region_router,
    stations_router,
)
from cavok.services.weather import WeatherService

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting CAVOK...")

    await init_db()
    logger.info("Database initialized")

    client = AviationWeatherClient.from_settings(settings)
    app.state.weather_service = WeatherService(client, async_session_maker, settings)
    region = await app.state.weather_service.region()
    if region is None:
        logger.info("No monitored region selected yet")
    else:
        logger.info(f"Monitoring {region.radius} km around {region.center.degrees}")

    yield

    # Shutdown
    logger.info("Shutting down CAVOK...")
    app.state.weather_service.close()
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="CAVOK",
    description="METAR and TAF map backend for a monitored region",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(region_router)
app.include_router(stations_router)
app.include_router(observations_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "CAVOK",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
