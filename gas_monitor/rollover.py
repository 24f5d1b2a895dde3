"""Promotion of stale entries to the next tier up.

Readings that are no longer from today become DailyAggregates in the history
tier; DailyAggregates that are no longer from this month become
MonthlyAggregates. Both checks run on every page load and do nothing when
there is nothing to roll.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel

from .aggregate import aggregate_daily, aggregate_monthly
from .models import DailyAggregateModel, MonthlyAggregateModel, Tier
from .store import StoreUnavailableError
from .tiers import TierRepository
from .timeutil import day_key, month_key, month_of_day, utc_now

E = TypeVar("E", bound=BaseModel)


def upsert(entries: Sequence[E], new: E, key: str) -> list[E]:
    """Replace the entry whose ``key`` field equals ``new``'s, else append."""
    out = list(entries)
    for i, entry in enumerate(out):
        if getattr(entry, key) == getattr(new, key):
            out[i] = new
            return out
    out.append(new)
    return out


@dataclass
class RolloverReport:
    readings_archived: int = 0
    days_archived: int = 0
    daily_keys: list[str] = field(default_factory=list)
    monthly_keys: list[str] = field(default_factory=list)

    @property
    def rolled(self) -> bool:
        return bool(self.readings_archived or self.days_archived)

    @property
    def messages(self) -> list[str]:
        out: list[str] = []
        if self.readings_archived:
            out.append(f"Archived {self.readings_archived} entries from previous days")
        if self.days_archived:
            out.append(f"Archived {self.days_archived} entries from previous months")
        return out


class SaveOutcome(StrEnum):
    SAVED = "saved"
    NO_DATA = "no_data"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class SaveResult:
    outcome: SaveOutcome
    message: str
    aggregate: DailyAggregateModel | MonthlyAggregateModel | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == SaveOutcome.SAVED


class RolloverManager:
    def __init__(self, repo: TierRepository, clock: Callable[[], datetime] = utc_now) -> None:
        self.repo = repo
        self.clock = clock

    def run(self) -> RolloverReport:
        now = self.clock()
        report = RolloverReport()
        report.readings_archived, report.daily_keys = self.roll_today(day_key(now.date()))
        report.days_archived, report.monthly_keys = self.roll_month(month_key(now.date()))
        for message in report.messages:
            logging.info(message)
        return report

    def roll_today(self, today: str) -> tuple[int, list[str]]:
        readings = self.repo.load_readings()
        current = [r for r in readings if r.day == today]
        if len(current) == len(readings):
            return 0, []

        groups: dict[str, list] = defaultdict(list)
        for r in readings:
            if r.day != today:
                groups[r.day].append(r)

        try:
            history = self.repo.load_history(strict=True)
        except StoreUnavailableError as exc:
            logging.error("Daily rollover skipped; history unreadable: %s", exc)
            return 0, []
        for day, group in groups.items():
            daily = aggregate_daily(group, day)
            if daily is not None:
                history = upsert(history, daily, "date")

        if not self.repo.save(Tier.HISTORY, history):
            logging.warning("Daily rollover skipped; %s stale readings kept in today's data", len(readings) - len(current))
            return 0, []
        if not self.repo.save(Tier.TODAY, current):
            # History already holds the aggregates; re-running replaces them with the same values.
            logging.warning("Stale readings could not be removed from today's data")
            return 0, []
        return len(readings) - len(current), list(groups)

    def roll_month(self, this_month: str) -> tuple[int, list[str]]:
        history = self.repo.load_history()
        current = [d for d in history if month_of_day(d.date) == this_month]
        if len(current) == len(history):
            return 0, []

        groups: dict[str, list] = defaultdict(list)
        for d in history:
            month = month_of_day(d.date)
            if month != this_month:
                groups[month].append(d)

        try:
            monthly = self.repo.load_monthly(strict=True)
        except StoreUnavailableError as exc:
            logging.error("Monthly rollover skipped; monthly data unreadable: %s", exc)
            return 0, []
        for month, group in groups.items():
            agg = aggregate_monthly(group, month)
            if agg is not None:
                monthly = upsert(monthly, agg, "month")

        if not self.repo.save(Tier.MONTHLY, monthly):
            logging.warning("Monthly rollover skipped; %s daily entries kept in history", len(history) - len(current))
            return 0, []
        if not self.repo.save(Tier.HISTORY, current):
            logging.warning("Previous months could not be removed from history")
            return 0, []
        return len(history) - len(current), list(groups)

    def save_daily_average(self) -> SaveResult:
        """Average today's readings into history and clear them once written."""
        today = day_key(self.clock().date())
        self.roll_today(today)
        try:
            readings = self.repo.load_readings(strict=True)
            todays = [r for r in readings if r.day == today]
            daily = aggregate_daily(todays, today)
            if daily is None:
                return SaveResult(SaveOutcome.NO_DATA, "No data available to save")
            history = upsert(self.repo.load_history(strict=True), daily, "date")
        except StoreUnavailableError as exc:
            logging.error("Daily average not saved: %s", exc)
            return SaveResult(SaveOutcome.STORAGE_UNAVAILABLE, "Average could not be saved; today's data kept")

        if not self.repo.save(Tier.HISTORY, history):
            return SaveResult(SaveOutcome.STORAGE_UNAVAILABLE, "Average could not be saved; today's data kept")
        logging.info("Saved daily average for %s from %s readings", today, len(todays))
        if not self.repo.save(Tier.TODAY, [r for r in readings if r.day != today]):
            return SaveResult(SaveOutcome.SAVED, "Average saved to history, but today's data could not be cleared", daily)
        return SaveResult(SaveOutcome.SAVED, "Average saved to history and today's data cleared!", daily)

    def save_monthly_average(self) -> SaveResult:
        """Average this month's daily entries into the monthly tier and clear them once written."""
        this_month = month_key(self.clock().date())
        self.roll_month(this_month)
        try:
            history = self.repo.load_history(strict=True)
            days = [d for d in history if month_of_day(d.date) == this_month]
            agg = aggregate_monthly(days, this_month)
            if agg is None:
                return SaveResult(SaveOutcome.NO_DATA, "No data available to save")
            monthly = upsert(self.repo.load_monthly(strict=True), agg, "month")
        except StoreUnavailableError as exc:
            logging.error("Monthly average not saved: %s", exc)
            return SaveResult(SaveOutcome.STORAGE_UNAVAILABLE, "Monthly average could not be saved; this month's data kept")

        if not self.repo.save(Tier.MONTHLY, monthly):
            return SaveResult(SaveOutcome.STORAGE_UNAVAILABLE, "Monthly average could not be saved; this month's data kept")
        logging.info("Saved monthly average for %s from %s days", this_month, len(days))
        if not self.repo.save(Tier.HISTORY, [d for d in history if month_of_day(d.date) != this_month]):
            return SaveResult(
                SaveOutcome.SAVED,
                f"Monthly average saved ({agg.dayCount} days averaged), but this month's data could not be cleared",
                agg,
            )
        return SaveResult(
            SaveOutcome.SAVED,
            f"Monthly average saved ({agg.dayCount} days averaged) and this month's data cleared!",
            agg,
        )
