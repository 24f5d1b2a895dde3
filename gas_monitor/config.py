import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


class LogLevel(StrEnum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class TransportKind(StrEnum):
    SERIAL = "serial"
    SIMULATED = "simulated"


class Settings(BaseModel):
    store_path: str = Field(default="./gas_monitor.db", validation_alias="STORE_PATH")
    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias="LOG_LEVEL")

    transport: TransportKind = Field(default=TransportKind.SERIAL, validation_alias="TRANSPORT")
    # ESP32 relay board forwarding the sensor notifications as text lines
    serial_port: str = Field(default="/dev/ttyUSB0", validation_alias="SERIAL_PORT")
    serial_baudrate: int = Field(default=115200, validation_alias="SERIAL_BAUDRATE")
    serial_timeout_secs: float = Field(default=1.0, validation_alias="SERIAL_TIMEOUT_SECS")
    reconnect_delay_secs: int = Field(default=5, validation_alias="RECONNECT_DELAY_SECS")
    simulated_interval_secs: float = Field(default=2.0, validation_alias="SIMULATED_INTERVAL_SECS")

    today_cap: int = Field(default=100, ge=1, validation_alias="TODAY_CAP")
    export_dir: str = Field(default=".", validation_alias="EXPORT_DIR")


ENV_KEYS: Final[tuple[str, ...]] = (
    "STORE_PATH",
    "LOG_LEVEL",
    "TRANSPORT",
    "SERIAL_PORT",
    "SERIAL_BAUDRATE",
    "SERIAL_TIMEOUT_SECS",
    "RECONNECT_DELAY_SECS",
    "SIMULATED_INTERVAL_SECS",
    "TODAY_CAP",
    "EXPORT_DIR",
)


def load_settings() -> Settings:
    # Load .env if present (does nothing if file missing)
    load_dotenv()
    data: dict[str, str] = {}
    for key in ENV_KEYS:
        if key in os.environ:
            data[key] = os.environ[key]

    if "LOG_LEVEL" in data:
        data["LOG_LEVEL"] = data["LOG_LEVEL"].upper()
    if "TRANSPORT" in data:
        data["TRANSPORT"] = data["TRANSPORT"].lower()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        if "TRANSPORT" in data and data["TRANSPORT"] not in {k.value for k in TransportKind}:
            raise RuntimeError(f"Unsupported TRANSPORT: {data['TRANSPORT']!r} (expected serial or simulated)") from e
        raise
