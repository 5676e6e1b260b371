"""API routers."""

from cavok.routers.health import router as health_router
from cavok.routers.metrics import router as metrics_router
from cavok.routers.observations import router as observations_router
from cavok.routers.region import router as region_router
from cavok.routers.stations import router as stations_router

__all__ = [
    "health_router",
    "metrics_router",
    "observations_router",
    "region_router",
    "stations_router",
]
