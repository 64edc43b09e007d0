# sensorweb/sensors/fake.py
"""
Fake sensor

Produces a slow sine wave around 20 so the whole pipeline (buffer, JSON,
web page) can be tried out without any hardware attached.
"""
from __future__ import annotations
import math
import time
from typing import Iterable

from .interface import SensorClient, SensorReading

DEFAULT_INTERVAL_S = 0.1


class FakeSensor(SensorClient):
    kind = "fake"

    def __init__(self, interval_s: float = DEFAULT_INTERVAL_S, amplitude: float = 5.0, offset: float = 20.0) -> None:
        self.id = "fake"
        self.interval_s = interval_s
        self.sampling_rate = 1.0 / interval_s
        self.amplitude = amplitude
        self.offset = offset
        self._t = 0.0

    def poll(self) -> Iterable[SensorReading]:
        value = math.sin(self._t) * self.amplitude + self.offset
        self._t += 0.1
        return [SensorReading(value=value, ts=time.time())]

    def close(self) -> None:
        pass
