"""API dependencies."""

from fastapi import HTTPException, Request, status

from cavok.exceptions import (
    NetworkError,
    NoRegionError,
    PersistenceError,
    RefreshInProgressError,
    WeatherError,
)
from cavok.services.weather import WeatherService

ERROR_STATUS: dict[type[WeatherError], int] = {
    NetworkError: status.HTTP_502_BAD_GATEWAY,
    NoRegionError: status.HTTP_409_CONFLICT,
    RefreshInProgressError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_weather_service(request: Request) -> WeatherService:
    """The session's weather service, created in the application lifespan."""
    return request.app.state.weather_service


def weather_http_error(error: WeatherError) -> HTTPException:
    """Translate a pipeline error into an HTTP error carrying its status text."""
    code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=error.status_text)
