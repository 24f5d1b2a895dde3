import math
from enum import StrEnum
from typing import Final

from .models import Pollutant

# Monthly-average approximations, reused unchanged for daily averages (ppm)
ECO_THRESHOLDS: Final[dict[str, float]] = {
    "co": 50.0,
    "co2": 100_000.0,
    "nh3": 10.0,
    "etanol": 10.0,
}

# (good below, moderate below) for instantaneous readings on the live page
_LEVEL_BOUNDS: Final[dict[str, tuple[float, float]]] = {
    "co2": (400.0, 1000.0),
    "co": (9.0, 35.0),
    "etanol": (25.0, 50.0),
    "nh3": (25.0, 50.0),
}


class GasLevel(StrEnum):
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
    UNKNOWN = "unknown"


def _available(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def is_eco(pollutant: Pollutant | str, value: float | None) -> bool:
    if pollutant not in ECO_THRESHOLDS:
        raise ValueError(f"Unknown pollutant: {pollutant!r}")
    if not _available(value):
        return False
    return value <= ECO_THRESHOLDS[pollutant]  # type: ignore[operator]


def gas_level(pollutant: Pollutant | str, value: float | None) -> GasLevel:
    bounds = _LEVEL_BOUNDS.get(pollutant)
    if bounds is None or not _available(value):
        return GasLevel.UNKNOWN
    good_below, moderate_below = bounds
    if value < good_below:  # type: ignore[operator]
        return GasLevel.GOOD
    if value < moderate_below:  # type: ignore[operator]
        return GasLevel.MODERATE
    return GasLevel.POOR
