import argparse
import logging

from .config import Settings, TransportKind, load_settings
from .export import export_snapshot, write_snapshot
from .ingest import FrameSource, IngestSession, run_ingest
from .models import Tier
from .rollover import RolloverManager
from .store import SQLiteStore
from .tiers import TierRepository
from .timeutil import utc_now

_TIER_ARGS = {"today": Tier.TODAY, "history": Tier.HISTORY, "monthly": Tier.MONTHLY}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def make_frame_source(settings: Settings) -> FrameSource:
    if settings.transport == TransportKind.SIMULATED:
        from .transport.simulated import SimulatedFrameSource

        return SimulatedFrameSource(interval_secs=settings.simulated_interval_secs)

    from .transport.serial_source import SerialFrameSource

    return SerialFrameSource(
        settings.serial_port,
        baudrate=settings.serial_baudrate,
        timeout_secs=settings.serial_timeout_secs,
    )


def main() -> None:
    settings = load_settings()
    _setup_logging(settings.log_level)

    repo = TierRepository(SQLiteStore(settings.store_path))
    session = IngestSession(repo, cap=settings.today_cap)
    run_ingest(
        source=make_frame_source(settings),
        session=session,
        reconnect_delay_secs=settings.reconnect_delay_secs,
    )


def export_main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Export one tier of gas readings as JSON.")
    parser.add_argument("tier", choices=sorted(_TIER_ARGS))
    parser.add_argument("--out", help="output directory (defaults to EXPORT_DIR)")
    args = parser.parse_args(argv)

    settings = load_settings()
    _setup_logging(settings.log_level)

    store = SQLiteStore(settings.store_path)
    try:
        repo = TierRepository(store)
        RolloverManager(repo).run()
        result = export_snapshot(repo, _TIER_ARGS[args.tier], utc_now().date())
        path = write_snapshot(result, args.out or settings.export_dir)
    finally:
        store.close()

    print(result.message if path is None else f"{result.message} -> {path}")


if __name__ == "__main__":
    main()
