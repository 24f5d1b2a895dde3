"""Decoding of the sensor's text protocol.

A frame is a comma separated list of ``key:value`` pairs, for example::

    Location:Kitchen,Etanol:25.3ppm,CO2:412.7ppm,CO:15.2ppm,NH3:8.9ppm

The parser never raises: unknown keys are ignored and numeric values that
cannot be parsed come out as NaN.
"""

import logging
import math
from datetime import datetime
from typing import Any, Final

from pydantic import ValidationError

from .models import ReadingModel
from .timeutil import iso_timestamp

NUMERIC_KEYS: Final[frozenset[str]] = frozenset({"etanol", "co2", "co", "nh3"})
UNIT_SUFFIX: Final[str] = "ppm"


def _parse_ppm(value: str) -> float:
    text = value.strip()
    if text.lower().endswith(UNIT_SUFFIX):
        text = text[: -len(UNIT_SUFFIX)].strip()
    try:
        return float(text)
    except ValueError:
        return math.nan


def parse_frame(frame: str | bytes) -> dict[str, Any]:
    """Decode one frame into a reading mapping without ``dateTime``."""
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", errors="replace")
    data: dict[str, Any] = {}
    for part in frame.strip().split(","):
        key, sep, value = part.partition(":")
        key = key.strip().lower()
        if not sep or not key or not value.strip():
            continue
        if key == "location":
            data["location"] = value.strip()
        elif key in NUMERIC_KEYS:
            data[key] = _parse_ppm(value)
    return data


def build_reading(fields: dict[str, Any], now: datetime) -> ReadingModel | None:
    """Stamp parsed fields with ``now`` and validate them into a reading."""
    try:
        return ReadingModel.model_validate({**fields, "dateTime": iso_timestamp(now)})
    except ValidationError as exc:
        logging.warning("Discarding frame that does not form a reading: %s", exc)
        return None
