"""Import of JSON snapshots into the history and monthly tiers.

Imported entries are merged with the resident ones by their natural key
(``date`` or ``month``); on collision the imported entry wins, and among
imported duplicates the later one wins. Re-importing the same snapshot
leaves the tier unchanged.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from .models import TIER_KEY_FIELDS, TIER_MODELS, Tier
from .store import StoreUnavailableError
from .tiers import TierRepository

IMPORTABLE_TIERS = (Tier.HISTORY, Tier.MONTHLY)


class ImportOutcome(StrEnum):
    IMPORTED = "imported"
    EMPTY_INPUT = "empty_input"
    INVALID_JSON = "invalid_json"
    NOT_AN_ARRAY = "not_an_array"
    NO_VALID_ENTRIES = "no_valid_entries"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class EntryRejection:
    index: int
    reason: str


@dataclass
class ImportResult:
    outcome: ImportOutcome
    message: str
    accepted: int = 0
    total: int = 0
    rejected: list[EntryRejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == ImportOutcome.IMPORTED


def decode_entries(tier: Tier, items: list[Any]) -> tuple[list[BaseModel], list[EntryRejection]]:
    """Decode each element against the tier schema; invalid ones are rejected, not fatal.

    Only the object shape and the key field decide acceptance. Pollutant
    values that do not parse become missing and unknown fields are kept.
    """
    model = TIER_MODELS[tier]
    valid: list[BaseModel] = []
    rejected: list[EntryRejection] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            rejected.append(EntryRejection(i, f"expected an object, got {type(item).__name__}"))
            continue
        try:
            valid.append(model.model_validate(item))
        except ValidationError as exc:
            reason = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
            rejected.append(EntryRejection(i, reason))
    return valid, rejected


def merge_snapshot(repo: TierRepository, tier: Tier, value: Any) -> ImportResult:
    """Merge an already deserialized snapshot into ``tier``."""
    if tier not in IMPORTABLE_TIERS:
        raise ValueError(f"Tier {tier.value} does not accept imports")
    if not isinstance(value, list):
        return ImportResult(ImportOutcome.NOT_AN_ARRAY, "Imported data must be an array")

    valid, rejected = decode_entries(tier, value)
    if rejected:
        logging.info("Dropped %s invalid entries from %s import", len(rejected), tier.value)
    if not valid:
        noun = "monthly entries" if tier == Tier.MONTHLY else "data entries"
        return ImportResult(ImportOutcome.NO_VALID_ENTRIES, f"No valid {noun} found", rejected=rejected)

    key = TIER_KEY_FIELDS[tier]
    try:
        existing = repo.load(tier, strict=True)
    except StoreUnavailableError as exc:
        logging.error("Store unavailable, import into %s aborted: %s", tier.value, exc)
        return ImportResult(ImportOutcome.STORAGE_UNAVAILABLE, "Storage unavailable; nothing imported", rejected=rejected)

    merged: dict[str, BaseModel] = {getattr(e, key): e for e in existing}
    for entry in valid:
        merged[getattr(entry, key)] = entry
    entries = sorted(merged.values(), key=lambda e: getattr(e, key), reverse=True)

    if not repo.save(tier, entries):
        return ImportResult(ImportOutcome.STORAGE_UNAVAILABLE, "Storage unavailable; nothing imported", rejected=rejected)
    logging.info("Imported %s entries into %s (total %s)", len(valid), tier.value, len(entries))
    return ImportResult(
        ImportOutcome.IMPORTED,
        f"Successfully imported {len(valid)} entries. Total entries: {len(entries)}",
        accepted=len(valid),
        total=len(entries),
        rejected=rejected,
    )


def import_snapshot(repo: TierRepository, tier: Tier, payload: str) -> ImportResult:
    """Import pasted or uploaded JSON text."""
    if not payload.strip():
        return ImportResult(ImportOutcome.EMPTY_INPUT, "Please enter JSON data")
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as exc:
        logging.warning("Import into %s is not valid JSON: %s", tier.value, exc)
        return ImportResult(ImportOutcome.INVALID_JSON, "Invalid JSON data")
    return merge_snapshot(repo, tier, value)


def import_file(repo: TierRepository, tier: Tier, path: str | Path) -> ImportResult:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logging.warning("Cannot read import file %s: %s", path, exc)
        return ImportResult(ImportOutcome.INVALID_JSON, "Invalid JSON file")
    result = import_snapshot(repo, tier, text)
    if result.outcome == ImportOutcome.INVALID_JSON:
        result.message = "Invalid JSON file"
    return result
