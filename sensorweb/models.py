from __future__ import annotations
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, conint

Steps = conint(ge=0)

# POST keys the demo web pages send for the forced value
VALUE_KEYS = ("value", "volt", "degrees", "temperature")


class SensorSnapshot(BaseModel):
    """Snapshot of the ring buffer sent to the browser on GET."""
    epoch: int = Field(description="Unix timestamp (seconds) when the snapshot was taken")
    lastvalue: float = Field(default=0.0, description="Most recent reading")
    values: List[float] = Field(default_factory=list, description="Buffered readings, oldest first")
    time: List[int] = Field(default_factory=list, description="Timestamps of the readings in ms")
    fs: float = Field(description="Sampling rate of the sensor in Hz")
    sensor: str = Field(description="Sensor kind, e.g. fake, ds18b20, ads1115")


class OverrideRequest(BaseModel):
    """Request to force the readings to a value."""
    value: float = Field(allow_inf_nan=False, description="Value to force, must be finite")
    steps: Optional[Steps] = Field(
        default=None,
        description="Force the next N readings. Without it all buffered readings are overwritten.",
    )
    hello: Optional[str] = Field(default=None, description="Free text message, logged by the server")

    @classmethod
    def from_fields(cls, fields: Dict[str, object]) -> "OverrideRequest":
        """
        Build a request from decoded POST fields. The value may come under
        any of the keys in VALUE_KEYS. Raises ValueError if none is present.
        """
        for key in VALUE_KEYS:
            if key in fields and fields[key] not in (None, ""):
                value = fields[key]
                break
        else:
            raise ValueError(f"no value given, expected one of: {', '.join(VALUE_KEYS)}")
        steps = fields.get("steps")
        hello = fields.get("hello")
        return cls(
            value=value,
            steps=None if steps in (None, "") else steps,
            hello=None if hello is None else str(hello),
        )


class OverrideResult(BaseModel):
    """Result of an override command."""
    ok: bool = Field(description="Whether the override was applied")
    mode: Literal["all", "next"] = Field(description="'all' overwrote the buffer, 'next' forces upcoming readings")
    value: float = Field(description="Forced value")
    count: int = Field(description="Readings overwritten ('all') or readings to be forced ('next')")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status (always 'ok' if service is running)")
    sensor: str = Field(description="Sensor kind")
    running: bool = Field(description="Whether the sampling thread is alive")


class ErrorResponse(BaseModel):
    """Standard error response format."""
    detail: str = Field(description="Error message describing what went wrong")
