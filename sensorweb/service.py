from __future__ import annotations
import logging
import time
from typing import Optional

from .buffer import ReadingBuffer
from .models import OverrideRequest, OverrideResult, SensorSnapshot
from .sensors.interface import SensorClient
from .sensors.manager import SensorPoller

logger = logging.getLogger(__name__)


class SensorService:
    """Answers the web requests from the ring buffer of one sensor."""

    def __init__(self, buffer: ReadingBuffer, client: SensorClient, poller: Optional[SensorPoller] = None) -> None:
        self.buffer = buffer
        self.client = client
        self.poller = poller

    @property
    def running(self) -> bool:
        return self.poller is not None and self.poller.is_running

    # read
    def snapshot(self) -> SensorSnapshot:
        last_value, values, times = self.buffer.snapshot()
        return SensorSnapshot(
            epoch=int(time.time()),
            lastvalue=last_value,
            values=values,
            time=times,
            fs=float(self.client.sampling_rate),
            sensor=self.client.kind,
        )

    # write
    def override(self, req: OverrideRequest) -> OverrideResult:
        if req.hello:
            logger.info(f"Message from client: {req.hello}")
        if req.steps is not None:
            self.buffer.force_next(req.value, req.steps)
            logger.info(f"Forcing the next {req.steps} readings to {req.value}")
            return OverrideResult(ok=True, mode="next", value=req.value, count=req.steps)
        n = self.buffer.force_all(req.value)
        logger.info(f"Forced {n} buffered readings to {req.value}")
        return OverrideResult(ok=True, mode="all", value=req.value, count=n)
