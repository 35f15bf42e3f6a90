"""Pure functions for decoding E2 register bytes into values and strings."""

import logging
import math
from typing import Optional

from e2_sensor_lib import protocol
from e2_sensor_lib.models import CapabilitySet

logger = logging.getLogger(__name__)

# Offset between centikelvin/100 and degrees Celsius
KELVIN_OFFSET = 273.15


def combine_bytes(low: Optional[int], high: Optional[int]) -> float:
    """Combine a low/high register pair into one raw value.

    Args:
        low: Low byte, or None if the register was absent
        high: High byte, or None if the register was absent

    Returns:
        low + high * 256 as float, or NaN if either byte is absent
    """
    if low is None or high is None:
        return math.nan
    return low + high * 256.0


def decode_humidity(low: Optional[int], high: Optional[int]) -> float:
    """Relative humidity in %RH (raw value is in 1/100 %RH)."""
    return combine_bytes(low, high) / 100.0


def decode_temperature(low: Optional[int], high: Optional[int]) -> float:
    """Temperature in degrees Celsius (raw value is in centikelvin)."""
    return combine_bytes(low, high) / 100.0 - KELVIN_OFFSET


def decode_capabilities(mask: Optional[int]) -> CapabilitySet:
    """Decode the available-measurements bitmask.

    Args:
        mask: Bitmask register value, or None if the read failed

    Returns:
        CapabilitySet. All flags are False when mask is None.
    """
    if mask is None:
        return CapabilitySet()

    def bit(n: int) -> bool:
        return bool((mask >> n) & 0x01)

    return CapabilitySet(
        humidity=bit(protocol.CAP_BIT_HUMIDITY),
        temperature=bit(protocol.CAP_BIT_TEMPERATURE),
        air_velocity=bit(protocol.CAP_BIT_AIR_VELOCITY),
        co2=bit(protocol.CAP_BIT_CO2),
        raw=mask,
    )


def format_device_type(group_low: int, subgroup: int, group_high: int) -> str:
    """Format the product type string from the identification registers.

    The group bytes form the product series, the subgroup carries the output
    type in its high nibble and the firmware type in its low nibble.

    Examples:
        group_low=0x0A, subgroup=0x12, group_high=0x00 -> "EE10-1 FT2"
        group_low=0x2C, subgroup=0x03, group_high=0x01 -> "EE300 FT3"

    Args:
        group_low: Group low byte
        subgroup: Subgroup byte
        group_high: Group high byte (0x55 and 0xFF mean "none")

    Returns:
        Type string such as "EE07 FT1" or "EE210-2 FT5"
    """
    if group_high in protocol.GROUP_HIGH_SENTINELS:
        group_high = 0x00

    product_series = group_high * 256 + group_low
    output_type = (subgroup >> 4) & 0x0F
    firmware_type = subgroup & 0x0F

    type_str = f"EE{product_series:02d}"
    if output_type != 0:
        type_str += f"-{output_type}"
    type_str += f" FT{firmware_type}"
    return type_str
