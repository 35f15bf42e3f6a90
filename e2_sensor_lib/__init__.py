"""
e2_sensor_lib - Python driver for E+E Elektronik sensor modules on the E2 bus.

Reads humidity, temperature and the optional air velocity and CO2 channels
through an E2 serial interface (9600 baud, RTS/DTR asserted).
"""

from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.controller import E2Sensor
from e2_sensor_lib.errors import (
    E2Error,
    FramingError,
    InvalidConfigValue,
    ProtocolStatusError,
    TransportError,
    UnidentifiableDevice,
)
from e2_sensor_lib.models import CapabilitySet, FrameFault, MeasurementValues

__version__ = "0.1.0"

__all__ = [
    "E2Sensor",
    "RegisterBus",
    "MeasurementValues",
    "CapabilitySet",
    "FrameFault",
    "E2Error",
    "TransportError",
    "FramingError",
    "ProtocolStatusError",
    "UnidentifiableDevice",
    "InvalidConfigValue",
]
