from collections.abc import Sequence

import numpy as np

from .models import POLLUTANTS, DailyAggregateModel, MonthlyAggregateModel, ReadingModel
from .timeutil import month_of_day


def zero_fill_for_aggregation(values: Sequence[float | None]) -> np.ndarray:
    """Missing and NaN values count as 0 in sums.

    Display code treats the same values as unavailable. Averages are divided
    by the full entry count, not by the number of available values.
    """
    return np.nan_to_num(np.array(values, dtype=float), nan=0.0)


def _zero_filled_means(entries: Sequence[ReadingModel | DailyAggregateModel]) -> dict[str, float]:
    return {p: float(zero_fill_for_aggregation([getattr(e, p) for e in entries]).mean()) for p in POLLUTANTS}


def aggregate_daily(readings: Sequence[ReadingModel], date: str) -> DailyAggregateModel | None:
    """Average same-day readings into the DailyAggregate keyed by ``date``.

    Returns None for an empty sequence. Raises ValueError if a reading falls
    on another day.
    """
    if not readings:
        return None
    stray = [r.dateTime for r in readings if r.day != date]
    if stray:
        raise ValueError(f"Readings outside {date}: {stray}")
    return DailyAggregateModel(date=date, **_zero_filled_means(readings))


def aggregate_monthly(days: Sequence[DailyAggregateModel], month: str) -> MonthlyAggregateModel | None:
    """Average same-month daily aggregates into the MonthlyAggregate keyed by ``month``."""
    if not days:
        return None
    stray = [d.date for d in days if month_of_day(d.date) != month]
    if stray:
        raise ValueError(f"Daily aggregates outside {month}: {stray}")
    return MonthlyAggregateModel(month=month, dayCount=len(days), **_zero_filled_means(days))
