# sensorweb/sensors/ads1115.py
from __future__ import annotations
import logging
import time
from typing import Iterable

from smbus2 import SMBus

from .interface import SensorClient, SensorReadError, SensorReading

logger = logging.getLogger(__name__)

REG_CONVERSION = 0x00
REG_CONFIG = 0x01

# full scale range [V] -> PGA bits
PGA = {
    6.144: 0b000,
    4.096: 0b001,
    2.048: 0b010,
    1.024: 0b011,
    0.512: 0b100,
    0.256: 0b101,
}

# samples per second -> DR bits
DATA_RATES = {
    8: 0b000,
    16: 0b001,
    32: 0b010,
    64: 0b011,
    128: 0b100,
    250: 0b101,
    475: 0b110,
    860: 0b111,
}


def config_word(channel: int, fsr: float, rate: int) -> int:
    """Config register value for continuous single-ended conversion on `channel`."""
    if channel not in (0, 1, 2, 3):
        raise ValueError(f"channel must be 0-3, got {channel}")
    if fsr not in PGA:
        raise ValueError(f"unsupported full scale range {fsr}, expected one of {sorted(PGA)}")
    if rate not in DATA_RATES:
        raise ValueError(f"unsupported data rate {rate}, expected one of {sorted(DATA_RATES)}")
    mux = 0x04 + channel
    return (
        (mux << 12) |              # MUX: AINx against GND
        (PGA[fsr] << 9) |          # PGA
        (0x00 << 8) |              # MODE continuous
        (DATA_RATES[rate] << 5) |  # DR
        0b11                       # comparator disabled
    )


def raw_to_volts(data: list[int], fsr: float) -> float:
    raw = (data[0] << 8) | data[1]
    if raw & 0x8000:
        raw -= 1 << 16
    return raw * (fsr / 32768.0)


class ADS1115Client(SensorClient):
    """
    ADS1115 16 bit ADC on the I2C bus.

    The chip runs in continuous conversion mode at `rate` samples per second
    and every poll fetches the latest conversion result in volts.
    """

    kind = "ads1115"

    def __init__(
        self,
        bus_id: int = 1,
        address: int = 0x48,
        channel: int = 0,
        fsr: float = 4.096,
        rate: int = 8,
    ) -> None:
        self.id = f"ads1115:{bus_id}:0x{address:02X}:{channel}"
        self.bus_id = bus_id
        self.address = address
        self.channel = channel
        self.fsr = fsr
        self.sampling_rate = float(rate)
        self.interval_s = 1.0 / rate
        config = config_word(channel, fsr, rate)

        self.bus: SMBus | None = None
        try:
            self.bus = SMBus(bus_id)
        except OSError as e:
            raise SensorReadError(f"Could not open I2C bus {bus_id}: {e}") from e
        try:
            self.bus.write_i2c_block_data(address, REG_CONFIG, [(config >> 8) & 0xFF, config & 0xFF])
        except OSError as e:
            self.close()
            raise SensorReadError(f"ADS1115 not found at 0x{address:02X} on bus {bus_id}: {e}") from e
        logger.info(
            "ADS1115 at 0x%02X on bus %s: channel %s, +/-%sV, %s SPS",
            address, bus_id, channel, fsr, rate,
        )

    def read_voltage(self) -> float:
        if self.bus is None:
            raise SensorReadError("ADS1115 bus is closed")
        try:
            data = self.bus.read_i2c_block_data(self.address, REG_CONVERSION, 2)
        except OSError as e:
            raise SensorReadError(f"ADS1115 read failed on channel {self.channel}: {e}") from e
        return raw_to_volts(data, self.fsr)

    def poll(self) -> Iterable[SensorReading]:
        return [SensorReading(value=self.read_voltage(), ts=time.time())]

    def close(self) -> None:
        """Close the I2C bus connection."""
        if self.bus is not None:
            try:
                self.bus.close()
            except OSError as exc:
                logger.warning("Failed to close ADS1115 bus: %s", exc)
            self.bus = None
