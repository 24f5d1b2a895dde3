import random
import time

from ..ingest import TransportDisconnected


class SimulatedFrameSource:
    """Generates sensor-like frames for running the collector without hardware.

    Values drift around fixed baselines with uniform noise. With ``max_frames``
    set, the source disconnects after emitting that many frames.
    """

    def __init__(
        self,
        interval_secs: float = 2.0,
        location: str | None = "Simulated",
        max_frames: int | None = None,
        seed: int | None = None,
    ) -> None:
        self.interval_secs = max(0.0, float(interval_secs))
        self.location = location
        self.max_frames = max_frames
        self._rng = random.Random(seed)
        self._emitted = 0
        self._connected = False
        self._baselines = {"Etanol": 8.0, "CO2": 420.0, "CO": 6.0, "NH3": 5.0}
        self._noise = {"Etanol": 2.0, "CO2": 40.0, "CO": 2.0, "NH3": 1.5}

    def connect(self) -> None:
        self._connected = True
        self._emitted = 0

    def close(self) -> None:
        self._connected = False

    def next_frame(self) -> str:
        parts = [f"Location:{self.location}"] if self.location else []
        for name, base in self._baselines.items():
            value = max(0.0, base + self._rng.uniform(-self._noise[name], self._noise[name]))
            parts.append(f"{name}:{value:.1f}ppm")
        return ",".join(parts)

    def read_frame(self) -> str | None:
        if not self._connected:
            raise RuntimeError("Simulated source not connected; call connect() first")
        if self.max_frames is not None and self._emitted >= self.max_frames:
            raise TransportDisconnected("simulated source exhausted")
        if self._emitted and self.interval_secs:
            time.sleep(self.interval_secs)
        self._emitted += 1
        return self.next_frame()
