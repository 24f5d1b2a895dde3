import math
from enum import StrEnum
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .timeutil import day_of_timestamp, normalize_day

Pollutant = Literal["etanol", "co2", "co", "nh3"]

POLLUTANTS: Final[tuple[Pollutant, ...]] = ("etanol", "co2", "co", "nh3")


class Tier(StrEnum):
    """Store key of each temporal granularity."""

    TODAY = "todays_data"
    HISTORY = "data_history"
    MONTHLY = "monthly_data"


class ReadingModel(BaseModel):
    dateTime: str
    location: str | None = None
    etanol: float | None = None
    co2: float | None = None
    co: float | None = None
    nh3: float | None = None

    @field_validator("dateTime")
    @classmethod
    def _parseable_timestamp(cls, v: str) -> str:
        if day_of_timestamp(v) is None:
            raise ValueError(f"dateTime is not an ISO-8601 timestamp: {v!r}")
        return v

    @property
    def day(self) -> str:
        # validated above
        return day_of_timestamp(self.dateTime)  # type: ignore[return-value]


def _ppm_or_none(v: Any) -> float | None:
    """Pollutant values that do not parse as a number become missing."""
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


class DailyAggregateModel(BaseModel):
    # Unknown fields survive storage and re-export
    model_config = ConfigDict(extra="allow")

    date: str
    etanol: float | None = None
    co2: float | None = None
    co: float | None = None
    nh3: float | None = None

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, v: str) -> str:
        day = normalize_day(v)
        if day is None:
            raise ValueError(f"date is not parseable: {v!r}")
        return day

    @field_validator("etanol", "co2", "co", "nh3", mode="before")
    @classmethod
    def _lenient_ppm(cls, v: Any) -> float | None:
        return _ppm_or_none(v)


class MonthlyAggregateModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    month: str = Field(pattern=r"^\d{4}-\d{2}$")
    etanol: float | None = None
    co2: float | None = None
    co: float | None = None
    nh3: float | None = None
    dayCount: int | None = None

    @field_validator("etanol", "co2", "co", "nh3", mode="before")
    @classmethod
    def _lenient_ppm(cls, v: Any) -> float | None:
        return _ppm_or_none(v)

    @field_validator("dayCount", mode="before")
    @classmethod
    def _lenient_day_count(cls, v: Any) -> int | None:
        value = _ppm_or_none(v)
        if value is None or math.isnan(value) or not value.is_integer():
            return None
        return int(value)


TierEntry = ReadingModel | DailyAggregateModel | MonthlyAggregateModel

TIER_MODELS: Final[dict[Tier, type[BaseModel]]] = {
    Tier.TODAY: ReadingModel,
    Tier.HISTORY: DailyAggregateModel,
    Tier.MONTHLY: MonthlyAggregateModel,
}

TIER_KEY_FIELDS: Final[dict[Tier, str]] = {
    Tier.TODAY: "dateTime",
    Tier.HISTORY: "date",
    Tier.MONTHLY: "month",
}

TIER_LABELS: Final[dict[Tier, str]] = {
    Tier.TODAY: "todays-data",
    Tier.HISTORY: "sensor-data",
    Tier.MONTHLY: "monthly-data",
}
