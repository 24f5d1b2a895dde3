import math
from collections.abc import Sequence
from typing import Any, Dict, List

import pandas as pd

from ..eco import is_eco
from ..models import POLLUTANTS, DailyAggregateModel, MonthlyAggregateModel, ReadingModel

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

POLLUTANT_LABELS = {"etanol": "Etanol", "co2": "CO₂", "co": "CO", "nh3": "NH₃"}


def format_ppm(value: float | None) -> str:
    """One decimal, or "N/A" when the value is unavailable."""
    if value is None or math.isnan(value):
        return "N/A"
    return f"{value:.1f}"


def month_label(month: str, short: bool = False) -> str:
    year, mm = month.split("-")
    name = MONTH_NAMES[int(mm) - 1]
    return f"{name[:3] if short else name} {year}"


def readings_frame(readings: Sequence[ReadingModel]) -> pd.DataFrame:
    """Readings with a tz-aware ``time`` column, oldest first."""
    columns = ["time", "location", *POLLUTANTS]
    if not readings:
        return pd.DataFrame(columns=columns)
    rows = [
        {
            "time": r.dateTime,
            "location": r.location,
            **{p: getattr(r, p) for p in POLLUTANTS},
        }
        for r in readings
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["time"] = pd.to_datetime(df["time"], utc=True, format="ISO8601")
    return df.sort_values("time").reset_index(drop=True)


def history_frame(days: Sequence[DailyAggregateModel]) -> pd.DataFrame:
    """Daily averages with a ``date`` column, oldest first for charting."""
    columns = ["date", *POLLUTANTS]
    if not days:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([d.model_dump() for d in days], columns=columns)
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d")
    return df.sort_values("date").reset_index(drop=True)


def monthly_frame(months: Sequence[MonthlyAggregateModel]) -> pd.DataFrame:
    """Monthly averages with ``label`` ("Jan 2025") and ``year`` columns, oldest first."""
    columns = ["month", "label", "year", "dayCount", *POLLUTANTS]
    if not months:
        return pd.DataFrame(columns=columns)
    rows = [{**m.model_dump(), "label": month_label(m.month, short=True), "year": m.month[:4]} for m in months]
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values("month").reset_index(drop=True)


def group_by_year(months: Sequence[MonthlyAggregateModel]) -> Dict[str, List[MonthlyAggregateModel]]:
    """Newest year first, newest month first within a year."""
    out: Dict[str, List[MonthlyAggregateModel]] = {}
    for m in sorted(months, key=lambda m: m.month, reverse=True):
        out.setdefault(m.month[:4], []).append(m)
    return out


def eco_row(entry: DailyAggregateModel | MonthlyAggregateModel) -> Dict[str, Any]:
    """Display row: formatted value plus eco/not eco per pollutant."""
    row: Dict[str, Any] = {}
    for p in POLLUTANTS:
        value = getattr(entry, p)
        row[POLLUTANT_LABELS[p]] = format_ppm(value)
        row[f"{POLLUTANT_LABELS[p]} eco"] = "eco" if is_eco(p, value) else "not eco"
    return row
