import contextlib
import logging
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from .models import ReadingModel, Tier
from .parser import build_reading, parse_frame
from .store import StoreUnavailableError
from .tiers import TierRepository
from .timeutil import utc_now

TODAY_CAP = 100


class FrameSource(Protocol):
    """Transport delivering one decoded text frame per notification."""

    def connect(self) -> None: ...

    def read_frame(self) -> str | None:
        """Return the next frame, or None if nothing arrived within the read timeout."""
        ...

    def close(self) -> None: ...


class TransportDisconnected(Exception):
    """Raised by a frame source when the peer went away cleanly."""


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def append_reading(repo: TierRepository, reading: ReadingModel, cap: int = TODAY_CAP) -> int | None:
    """Append to today's tier keeping only the newest ``cap`` readings.

    Returns the new tier size, or None when the store could not be read or
    written; an unreadable tier is left untouched.
    """
    try:
        readings = repo.load_readings(strict=True)
    except StoreUnavailableError as exc:
        logging.error("Reading not stored; today's data unreadable: %s", exc)
        return None
    readings.append(reading)
    if len(readings) > cap:
        readings = readings[-cap:]
    if not repo.save(Tier.TODAY, readings):
        return None
    return len(readings)


class IngestSession:
    """Connection lifecycle and frame handling for one collector process.

    ``last_error`` stays set from a transport failure until the next connect
    attempt; the tiers are never touched by transport errors.
    """

    def __init__(
        self,
        repo: TierRepository,
        cap: int = TODAY_CAP,
        clock: Callable[[], datetime] = utc_now,
        on_reading: Callable[[ReadingModel], None] | None = None,
    ) -> None:
        self.repo = repo
        self.cap = cap
        self.clock = clock
        self.on_reading = on_reading
        self.state = ConnectionState.DISCONNECTED
        self.last_error: str | None = None
        self.latest: ReadingModel | None = None
        self.last_update: datetime | None = None
        self.logs: deque[str] = deque(maxlen=5)

    def _log(self, message: str) -> None:
        self.logs.append(f"{self.clock().strftime('%H:%M:%S')}: {message}")

    def on_connecting(self) -> None:
        self.state = ConnectionState.CONNECTING
        self.last_error = None
        self._log("Searching for sensor...")

    def on_connected(self) -> None:
        self.state = ConnectionState.CONNECTED
        logging.info("Transport connected")
        self._log("Successfully connected! Waiting for data...")

    def on_disconnected(self) -> None:
        if self.state == ConnectionState.DISCONNECTED:
            return
        self.state = ConnectionState.DISCONNECTED
        logging.info("Transport disconnected")
        self._log("Device disconnected")

    def on_error(self, message: str) -> None:
        self.last_error = message
        logging.warning("Transport error: %s", message)
        self._log(f"Error: {message}")

    def on_frame(self, frame: str | bytes) -> ReadingModel | None:
        text = frame.decode("utf-8", errors="replace") if isinstance(frame, bytes) else frame
        logging.info("Received: %s", text.strip())
        self._log(f"Received: {text.strip()}")

        fields = parse_frame(text)
        if not fields:
            logging.info("Ignoring frame without recognized keys")
            return None
        reading = build_reading(fields, self.clock())
        if reading is None:
            return None
        self.latest = reading
        self.last_update = self.clock()

        count = append_reading(self.repo, reading, self.cap)
        if count is None:
            self._log("Error saving data to storage")
        else:
            self._log(f"Data saved to today's storage ({count} entries)")

        if self.on_reading is not None:
            try:
                self.on_reading(reading)
            except Exception:
                # Callback errors must not affect ingestion
                logging.debug("on_reading callback error", exc_info=True)
        return reading


def run_ingest(source: FrameSource, session: IngestSession, reconnect_delay_secs: int = 5) -> None:
    """Pull frames from ``source`` forever, reconnecting after failures."""
    delay = max(1, int(reconnect_delay_secs))
    logging.info("Ingest starting: reconnect_delay=%ss, cap=%s", delay, session.cap)
    while True:
        session.on_connecting()
        try:
            source.connect()
        except Exception as exc:
            session.on_error(f"Connection failed: {exc}")
            time.sleep(delay)
            continue

        session.on_connected()
        try:
            while True:
                frame = source.read_frame()
                if frame is None:
                    continue
                session.on_frame(frame)
        except TransportDisconnected:
            pass
        except Exception as exc:
            session.on_error(str(exc))
        finally:
            with contextlib.suppress(Exception):
                source.close()
            session.on_disconnected()
        time.sleep(delay)
