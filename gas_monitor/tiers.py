import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, cast

from pydantic import BaseModel, TypeAdapter, ValidationError

from .models import TIER_MODELS, DailyAggregateModel, MonthlyAggregateModel, ReadingModel, Tier
from .store import Store, StoreUnavailableError

_ADAPTERS: dict[Tier, TypeAdapter[Any]] = {tier: TypeAdapter(list[model]) for tier, model in TIER_MODELS.items()}  # type: ignore[valid-type]


def dump_entries(tier: Tier, entries: Sequence[BaseModel], indent: int | None = None) -> str:
    """Serialize a tier as a JSON array of flat objects. NaN is written as null."""
    return _ADAPTERS[tier].dump_json(list(entries), indent=indent, exclude_none=True).decode("utf-8")


class TierRepository:
    """Typed access to the three tiers over an injected store.

    Storage failures are logged here and never propagate: loads degrade to an
    empty tier and writes return False. Read-modify-write callers load with
    ``strict=True`` so an unreadable tier is never overwritten.

    Stored entries that fail validation are skipped on load with a warning.
    The next save of that tier writes back only the valid entries, so such
    entries are dropped for good.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    def load(self, tier: Tier, strict: bool = False) -> list[BaseModel]:
        """Load and validate a tier. With ``strict``, StoreUnavailableError propagates."""
        try:
            raw = self.store.get(tier.value)
        except StoreUnavailableError as exc:
            if strict:
                raise
            logging.error("Store unavailable, treating %s as empty: %s", tier.value, exc)
            return []
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logging.warning("Stored %s is not valid JSON, treating as empty: %s", tier.value, exc)
            return []
        if not isinstance(items, list):
            logging.warning("Stored %s is not an array, treating as empty", tier.value)
            return []

        model = TIER_MODELS[tier]
        entries: list[BaseModel] = []
        for item in items:
            try:
                entries.append(model.model_validate(item))
            except ValidationError as exc:
                logging.warning("Skipping invalid %s entry %r: %s", tier.value, item, exc.errors())
        return entries

    def load_readings(self, strict: bool = False) -> list[ReadingModel]:
        return cast(list[ReadingModel], self.load(Tier.TODAY, strict))

    def load_history(self, strict: bool = False) -> list[DailyAggregateModel]:
        return cast(list[DailyAggregateModel], self.load(Tier.HISTORY, strict))

    def load_monthly(self, strict: bool = False) -> list[MonthlyAggregateModel]:
        return cast(list[MonthlyAggregateModel], self.load(Tier.MONTHLY, strict))

    def save(self, tier: Tier, entries: Sequence[BaseModel]) -> bool:
        try:
            self.store.set(tier.value, dump_entries(tier, entries))
        except StoreUnavailableError as exc:
            logging.error("Store unavailable, %s not saved: %s", tier.value, exc)
            return False
        return True

    def clear(self, tier: Tier) -> bool:
        try:
            self.store.remove(tier.value)
        except StoreUnavailableError as exc:
            logging.error("Store unavailable, %s not cleared: %s", tier.value, exc)
            return False
        return True


class ClearOutcome(StrEnum):
    CLEARED = "cleared"
    CONFIRMATION_REQUIRED = "confirmation_required"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class ClearResult:
    outcome: ClearOutcome
    message: str


CLEAR_PROMPTS: Final[dict[Tier, str]] = {
    Tier.TODAY: "Are you sure you want to clear today's readings? This action cannot be undone.",
    Tier.HISTORY: "Are you sure you want to clear all of this month's data? This action cannot be undone.",
    Tier.MONTHLY: "Are you sure you want to clear all monthly data? This action cannot be undone.",
}


def clear_tier(repo: TierRepository, tier: Tier, confirmed: bool = False) -> ClearResult:
    """Remove a tier from the store. Destructive, so callers must pass ``confirmed=True``."""
    if not confirmed:
        return ClearResult(ClearOutcome.CONFIRMATION_REQUIRED, CLEAR_PROMPTS[tier])
    if not repo.clear(tier):
        return ClearResult(ClearOutcome.STORAGE_UNAVAILABLE, "Data could not be cleared")
    logging.info("Cleared %s", tier.value)
    return ClearResult(ClearOutcome.CLEARED, "All data cleared successfully")
