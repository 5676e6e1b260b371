"""Errors raised by the weather pipeline.

Every error carries a message that can be shown to the user as-is.
"""

from typing import NoReturn


class WeatherError(Exception):
    """Base class for pipeline failures."""

    message = "Weather update failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def status_text(self) -> str:
        return str(self)


class NetworkError(WeatherError):
    """The upstream weather source could not be reached or answered badly."""

    message = "Unable to reach the weather service"


class NoRegionError(WeatherError):
    """An operation needs a monitored region and none is configured."""

    message = "Select a monitored region first"


class PersistenceError(WeatherError):
    """A local store transaction failed; nothing was committed."""

    message = "Failed to save weather data"


class RefreshInProgressError(WeatherError):
    """Another refresh is already running."""

    message = "A refresh is already in progress"


class ObservationParseError(ValueError):
    """A raw METAR/TAF record could not be understood."""


def raise_first(group: BaseExceptionGroup) -> NoReturn:
    """Re-raise the first WeatherError of a task group failure.

    Groups holding anything besides WeatherErrors are raised unchanged.
    """
    matched, rest = group.split(WeatherError)
    if matched is None or rest is not None:
        raise group
    error = matched.exceptions[0]
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    raise error from error.__cause__
