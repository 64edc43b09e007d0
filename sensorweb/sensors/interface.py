# sensorweb/sensors/interface.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Iterable


@dataclass
class SensorReading:
    value: float
    ts: float           # unix timestamp


class SensorReadError(RuntimeError):
    """The sensor could not be read. Acquisition cannot continue."""


class SensorClient(Protocol):
    """
    Minimal interface all sensor drivers must implement.
    One instance represents one physical (or simulated) sensor.
    """

    id: str             # e.g. "ds18b20:28-3ce1e380ac02"
    kind: str           # "fake", "ds18b20", "ads1115"
    sampling_rate: float  # Hz, reported to the browser as "fs"

    def poll(self) -> Iterable[SensorReading]:
        """
        Read the sensor once and return zero or more readings.

        Raises SensorReadError when the device cannot be read.
        """
        ...

    def close(self) -> None:
        """Release the device."""
        ...
