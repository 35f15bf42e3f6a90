"""Detection of the optional measurement channels on a module."""

import logging

from e2_sensor_lib import parsing
from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.models import CapabilitySet
from e2_sensor_lib.protocol import Register

logger = logging.getLogger(__name__)


class CapabilityProbe:
    """Reads the available-measurements bitmask register."""

    def __init__(self, bus: RegisterBus) -> None:
        self._bus = bus

    def probe(self) -> CapabilitySet:
        """Query the bitmask and decode it.

        Returns:
            CapabilitySet. If the register cannot be read, nothing is
            assumed present and every flag is False.
        """
        mask = self._bus.query(Register.CAPABILITIES)
        caps = parsing.decode_capabilities(mask)

        if mask is None:
            logger.warning("Capability register unreadable, assuming no channels")
        else:
            logger.info(
                f"Capabilities 0x{mask:02X}: humidity={caps.humidity} "
                f"temperature={caps.temperature} air_velocity={caps.air_velocity} "
                f"co2={caps.co2}"
            )
        return caps
