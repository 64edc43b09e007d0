# sensorweb/sensors/ds18b20.py
from __future__ import annotations
import logging
import os
import time
from typing import Iterable

from .interface import SensorClient, SensorReadError, SensorReading

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 10.0


def parse_temperature(text: str) -> float:
    """
    Parse the content of a DS18B20 sysfs file into degrees Celsius.

    Two formats are understood:
      temperature:  "23187"  (millidegrees)
      w1_slave:     "72 01 4b 46 7f ff 0e 10 57 : crc=57 YES"
                    "72 01 4b 46 7f ff 0e 10 57 t=23125"
    """
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        raise ValueError("empty sensor file")
    if "t=" in text:
        if not lines[0].endswith("YES"):
            raise ValueError("CRC check failed")
        temp_line = [ln for ln in lines if "t=" in ln][-1]
        raw = temp_line.split("t=")[-1]
    else:
        raw = lines[0]
    return int(raw) / 1000.0


class DS18B20Client(SensorClient):
    """
    1-wire DS18B20 temperature sensor read through the kernel w1 driver.

    Enable 1-wire (dtoverlay=w1-gpio) and pass the temperature file of the
    sensor, e.g. /sys/bus/w1/devices/28-3ce1e380ac02/temperature.
    """

    kind = "ds18b20"

    def __init__(self, path: str, interval_s: float = DEFAULT_INTERVAL_S) -> None:
        self.path = path
        self.id = f"ds18b20:{os.path.basename(os.path.dirname(path)) or path}"
        self.interval_s = interval_s
        self.sampling_rate = 1.0 / interval_s

        # dummy read to see if it works
        t = self.read_temperature()
        logger.info("Sensor read OK: %3.1fC. Measuring every %gsec.", t, interval_s)

    def read_temperature(self) -> float:
        try:
            with open(self.path, "r", encoding="ascii") as f:
                text = f.read()
        except OSError as e:
            raise SensorReadError(f"Could not open {self.path}: {e}") from e
        try:
            return parse_temperature(text)
        except ValueError as e:
            raise SensorReadError(f"Could not read from {self.path}: {e}") from e

    def poll(self) -> Iterable[SensorReading]:
        return [SensorReading(value=self.read_temperature(), ts=time.time())]

    def close(self) -> None:
        pass
