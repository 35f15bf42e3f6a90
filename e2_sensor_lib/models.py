"""Data models for the E2 sensor library."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional


class FrameFault(Enum):
    """Reasons a response frame is rejected, in the order they are checked."""

    LENGTH = "wrong frame length"
    MARKER = "wrong protocol marker"
    LENGTH_FIELD = "wrong length field"
    NAK = "status field is not ACK"
    RESERVED = "reserved field is not zero"
    CHECKSUM = "checksum mismatch"


@dataclass(frozen=True)
class CapabilitySet:
    """Measurement channels physically present on the attached module.

    Attributes:
        humidity: Relative humidity channel present (bit 0).
        temperature: Temperature channel present (bit 1).
        air_velocity: Air velocity channel present (bit 2), read as value 3.
        co2: CO2 channel present (bit 3), read as value 4.
        raw: Bitmask the flags were decoded from, or None if the read failed.
    """

    humidity: bool = False
    temperature: bool = False
    air_velocity: bool = False
    co2: bool = False
    raw: Optional[int] = None

    @property
    def detected(self) -> bool:
        """True if the bitmask register answered."""
        return self.raw is not None


@dataclass(frozen=True)
class MeasurementValues:
    """Decoded values of one sampling cycle.

    Unavailable channels hold NaN.

    Attributes:
        humidity: Relative humidity in %RH.
        temperature: Temperature in degrees Celsius.
        value3: Raw generic channel 3 (air velocity on modules that have it).
        value4: Raw generic channel 4 (CO2 on modules that have it).
        status: Status byte read at the end of the cycle, None if unreadable.
        ts: UTC timestamp when the cycle completed.
    """

    humidity: float = math.nan
    temperature: float = math.nan
    value3: float = math.nan
    value4: float = math.nan
    status: Optional[int] = None
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def valid(self) -> bool:
        """True if the cycle passed the status check."""
        return self.status == 0x00

    def as_dict(self) -> Dict[str, Optional[float]]:
        """Channel values keyed by name, with NaN mapped to None."""
        values = {
            "humidity": self.humidity,
            "temperature": self.temperature,
            "value3": self.value3,
            "value4": self.value4,
        }
        return {k: (None if math.isnan(v) else v) for k, v in values.items()}
