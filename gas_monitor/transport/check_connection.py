import logging
import os
import sys
import time

from ..parser import parse_frame
from .serial_source import SerialFrameSource


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    port = os.environ.get("SERIAL_PORT", "/dev/ttyUSB0")
    baudrate = int(_parse_float(os.environ.get("SERIAL_BAUDRATE"), 115200))
    timeout_secs = _parse_float(os.environ.get("CHECK_TIMEOUT_SECS"), 10.0)

    logging.info("Checking gas sensor bridge (port=%s, baud=%s)", port, baudrate)

    source = SerialFrameSource(port, baudrate, timeout_secs=1.0)
    try:
        source.connect()
    except Exception as exc:  # noqa: BLE001
        print(f"Serial connection failed (port={port}): {exc}", file=sys.stderr)
        sys.exit(1)

    logging.info("Connected. Waiting up to %ss for a frame...", timeout_secs)
    start = time.monotonic()
    frame: str | None = None
    try:
        while frame is None and time.monotonic() - start < timeout_secs:
            frame = source.read_frame()
    finally:
        source.close()

    if frame is None:
        print(
            f"Note: No frame received within {timeout_secs}s. Increase CHECK_TIMEOUT_SECS or verify the bridge is paired with the sensor.",
            file=sys.stderr,
        )
        sys.exit(0)

    print(f"Frame: {frame}")
    fields = parse_frame(frame)
    print("Parsed: " + " ".join(f"{k}={v}" for k, v in fields.items()))
    if not fields:
        print("Note: Frame contained no recognized keys.", file=sys.stderr)
    sys.exit(0)


if __name__ == "__main__":
    main()
