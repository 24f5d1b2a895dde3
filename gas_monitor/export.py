import logging
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from pathlib import Path

from .models import TIER_LABELS, Tier
from .store import StoreUnavailableError
from .tiers import TierRepository, dump_entries
from .timeutil import day_key


class ExportOutcome(StrEnum):
    EXPORTED = "exported"
    NOTHING_TO_EXPORT = "nothing_to_export"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class ExportResult:
    outcome: ExportOutcome
    message: str
    filename: str | None = None
    content: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == ExportOutcome.EXPORTED


def export_filename(tier: Tier, today: date) -> str:
    return f"{TIER_LABELS[tier]}-{day_key(today)}.json"


def export_snapshot(repo: TierRepository, tier: Tier, today: date) -> ExportResult:
    """Serialize the resident tier as pretty-printed JSON. Read-only."""
    try:
        entries = repo.load(tier, strict=True)
    except StoreUnavailableError as exc:
        logging.error("Export of %s failed: %s", tier.value, exc)
        return ExportResult(ExportOutcome.STORAGE_UNAVAILABLE, "Storage unavailable; nothing exported")
    if not entries:
        return ExportResult(ExportOutcome.NOTHING_TO_EXPORT, "No data available to export")
    noun = "Monthly data" if tier == Tier.MONTHLY else "Data"
    return ExportResult(
        ExportOutcome.EXPORTED,
        f"{noun} exported successfully!",
        filename=export_filename(tier, today),
        content=dump_entries(tier, entries, indent=2),
    )


def write_snapshot(result: ExportResult, directory: str | Path) -> Path | None:
    if not result.ok or result.filename is None or result.content is None:
        return None
    path = Path(directory) / result.filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.content, encoding="utf-8")
    logging.info("Wrote %s", path)
    return path
