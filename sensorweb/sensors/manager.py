# sensorweb/sensors/manager.py
from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

from sensorweb.buffer import ReadingBuffer
from sensorweb.config import SENSOR_KINDS, Settings
from .interface import SensorClient, SensorReadError

logger = logging.getLogger(__name__)


def make_sensor(settings: Settings) -> SensorClient:
    """
    Create the driver selected by settings.sensor_kind.

    Hardware drivers are imported lazily so the fake sensor runs on a
    machine without an I2C bus.
    """
    kind = settings.sensor_kind
    if kind == "fake":
        from .fake import FakeSensor, DEFAULT_INTERVAL_S
        return FakeSensor(interval_s=settings.interval_s or DEFAULT_INTERVAL_S)
    if kind == "ds18b20":
        from .ds18b20 import DS18B20Client, DEFAULT_INTERVAL_S
        return DS18B20Client(settings.ds18b20_path, interval_s=settings.interval_s or DEFAULT_INTERVAL_S)
    if kind == "ads1115":
        from .ads1115 import ADS1115Client
        return ADS1115Client(
            bus_id=settings.ads1115_bus,
            address=settings.ads1115_address,
            channel=settings.ads1115_channel,
            fsr=settings.ads1115_fsr,
            rate=settings.ads1115_rate,
        )
    raise ValueError(f"unknown sensor kind {kind!r}, expected one of {SENSOR_KINDS}")


class SensorPoller:
    """
    Polls one sensor on a fixed interval in a background thread and
    appends every reading to the buffer.

    A SensorReadError stops the poller for good: it is marked failed and
    on_failure is called so the main program can shut down.
    """

    def __init__(
        self,
        client: SensorClient,
        buffer: ReadingBuffer,
        interval_s: Optional[float] = None,
        on_failure: Optional[Callable[[SensorReadError], None]] = None,
    ) -> None:
        self.client = client
        self.buffer = buffer
        self.interval_s = interval_s or 1.0 / client.sampling_rate
        self.on_failure = on_failure
        self.failed = False
        self.error: Optional[SensorReadError] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> int:
        """Poll the sensor once. Returns the number of readings stored."""
        n = 0
        for r in self.client.poll():
            self.buffer.append(r.value, int(r.ts * 1000))
            n += 1
        return n

    def _run(self) -> None:
        logger.info(f"Sensor worker started for {self.client.id} with interval {self.interval_s}s")
        # wait() returns True once stop() was called
        while not self._stop.wait(self.interval_s):
            try:
                self.poll_once()
            except SensorReadError as e:
                logger.error(f"Sensor {self.client.id} failed: {e}")
                self.failed = True
                self.error = e
                if self.on_failure is not None:
                    self.on_failure(e)
                break
        logger.info(f"Sensor worker for {self.client.id} stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"poller-{self.client.kind}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the thread and wait for it to finish."""
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        self._thread = None
