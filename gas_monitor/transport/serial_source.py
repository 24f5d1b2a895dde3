import serial


class SerialFrameSource:
    """Frames relayed line by line over a serial port by the ESP32 bridge.

    Blank lines are skipped; boot/log lines without a ``key:value`` pair are
    ignored.
    """

    def __init__(self, port: str, baudrate: int = 115200, timeout_secs: float = 1.0) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout_secs = timeout_secs
        self._ser: serial.Serial | None = None

    def connect(self) -> None:
        self._ser = serial.Serial(self.port, self.baudrate, timeout=self.timeout_secs)
        # Drop anything buffered before we attached
        self._ser.reset_input_buffer()

    def close(self) -> None:
        if self._ser is not None and self._ser.is_open:
            self._ser.close()
        self._ser = None

    def read_frame(self) -> str | None:
        if self._ser is None:
            raise RuntimeError("Serial port not connected; call connect() first")
        raw = self._ser.readline()
        if not raw:
            return None
        line = raw.decode("utf-8", errors="replace").strip()
        if not line or ":" not in line:
            return None
        return line
