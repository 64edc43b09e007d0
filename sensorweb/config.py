from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

load_dotenv()  # .env in the working directory, if present

# Sensor driver: "fake", "ds18b20" or "ads1115"
SENSOR_KIND = os.getenv("SENSOR_KIND", "fake").lower()

# Socket shared with the web server (nginx: fastcgi_pass unix:/tmp/sensorsocket;)
SOCKET_PATH = os.getenv("SENSOR_SOCKET_PATH", "/tmp/sensorsocket")

# "fastcgi" behind nginx, or "http" served by uvicorn
TRANSPORT = os.getenv("SENSOR_TRANSPORT", "fastcgi").lower()
HTTP_HOST = os.getenv("SENSOR_HTTP_HOST", "127.0.0.1")
# 0 means uvicorn listens on SOCKET_PATH instead of a TCP port
HTTP_PORT = int(os.getenv("SENSOR_HTTP_PORT", "0"))

# Number of readings kept in the ring buffer; empty means the sensor default
_buffer_size = os.getenv("SENSOR_BUFFER_SIZE", "")
BUFFER_SIZE: Optional[int] = int(_buffer_size) if _buffer_size else None

# the DS18B20 samples every 10s, 500 readings cover well over an hour
DEFAULT_BUFFER_SIZES = {"ds18b20": 500}
DEFAULT_BUFFER_SIZE = 50

# Seconds between polls; empty means the driver default
_interval = os.getenv("SENSOR_INTERVAL_S", "")
INTERVAL_S: Optional[float] = float(_interval) if _interval else None

# 1-wire sensor, e.g. /sys/bus/w1/devices/28-3ce1e380ac02/temperature
DS18B20_PATH = os.getenv("DS18B20_PATH", "")

ADS1115_BUS = int(os.getenv("ADS1115_BUS", "1"))
ADS1115_ADDRESS = int(os.getenv("ADS1115_ADDRESS", "0x48"), 0)
ADS1115_CHANNEL = int(os.getenv("ADS1115_CHANNEL", "0"))
ADS1115_FSR = float(os.getenv("ADS1115_FSR", "4.096"))
ADS1115_RATE = int(os.getenv("ADS1115_RATE", "8"))

LOG_LEVEL = os.getenv("SENSOR_LOG_LEVEL", "INFO").upper()

TRANSPORTS = ("fastcgi", "http")
SENSOR_KINDS = ("fake", "ds18b20", "ads1115")


@dataclass(frozen=True)
class Settings:
    """Runtime settings. Defaults come from the environment, CLI flags override them."""
    sensor_kind: str = SENSOR_KIND
    socket_path: str = SOCKET_PATH
    transport: str = TRANSPORT
    http_host: str = HTTP_HOST
    http_port: int = HTTP_PORT
    buffer_size: Optional[int] = BUFFER_SIZE
    interval_s: Optional[float] = INTERVAL_S
    ds18b20_path: str = DS18B20_PATH
    ads1115_bus: int = ADS1115_BUS
    ads1115_address: int = ADS1115_ADDRESS
    ads1115_channel: int = ADS1115_CHANNEL
    ads1115_fsr: float = ADS1115_FSR
    ads1115_rate: int = ADS1115_RATE
    log_level: str = LOG_LEVEL

    def validate(self) -> "Settings":
        if self.sensor_kind not in SENSOR_KINDS:
            raise ValueError(f"unknown sensor kind {self.sensor_kind!r}, expected one of {SENSOR_KINDS}")
        if self.transport not in TRANSPORTS:
            raise ValueError(f"unknown transport {self.transport!r}, expected one of {TRANSPORTS}")
        if self.buffer_size is not None and self.buffer_size < 1:
            raise ValueError("buffer size must be at least 1")
        if self.interval_s is not None and self.interval_s <= 0:
            raise ValueError("sampling interval must be positive")
        if self.sensor_kind == "ds18b20" and not self.ds18b20_path:
            raise ValueError(
                "Specify the path to the sensor. For example: "
                "/sys/bus/w1/devices/28-3ce1e380ac02/temperature"
            )
        return self

    @property
    def resolved_buffer_size(self) -> int:
        if self.buffer_size is not None:
            return self.buffer_size
        return DEFAULT_BUFFER_SIZES.get(self.sensor_kind, DEFAULT_BUFFER_SIZE)

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every override that is not None applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
