"""Weather field registry: single source of truth for values a map layer can show."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from cavok.models import Observation, ObservationType


@dataclass(frozen=True)
class FieldDef:
    """Definition of a displayable observation value."""

    name: str  # canonical name used in the API
    label: str  # Human-readable label for UI
    unit: str  # Unit of measurement
    extract: Callable[[Observation], int | None]
    types: frozenset[ObservationType] = frozenset(ObservationType)


# ---------------------------------------------------------------------------
# Build the registry
# ---------------------------------------------------------------------------

_FIELDS: list[FieldDef] = [
    FieldDef("ceiling", "Ceiling", "ft", lambda o: o.cloud_height),
    FieldDef("visibility", "Visibility", "m", lambda o: o.visibility),
    # spread only exists for reports carrying temperature and dew point
    FieldDef(
        "temperature",
        "Temperature/Dew Point Spread",
        "°C",
        lambda o: o.spread if o.type == ObservationType.METAR else None,
        frozenset({ObservationType.METAR}),
    ),
]

FIELD_REGISTRY: dict[str, FieldDef] = {f.name: f for f in _FIELDS}
"""Canonical name → FieldDef."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def field_value(name: str, observation: Observation) -> int | None:
    """Value of field ``name`` for ``observation``; KeyError for unknown fields."""
    return FIELD_REGISTRY[name].extract(observation)


def get_fields_for_type(kind: ObservationType) -> list[FieldDef]:
    """Fields that carry a value for observations of ``kind``."""
    return [f for f in _FIELDS if kind in f.types]
