"""Product type identification from the group/subgroup registers."""

import logging

from e2_sensor_lib import parsing, protocol
from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.errors import UnidentifiableDevice
from e2_sensor_lib.protocol import Register

logger = logging.getLogger(__name__)


class DeviceIdentifier:
    """Decodes the module's product series, output type and firmware type."""

    def __init__(self, bus: RegisterBus) -> None:
        self._bus = bus

    def identify(self) -> str:
        """Read group low, subgroup and group high and format the type string.

        Partial identification is never reported: if any register is
        absent the whole result is the unknown placeholder.

        Returns:
            Type string such as "EE10-1 FT2", or "???" on any failed read
        """
        try:
            group_low = self._read(Register.GROUP_LOW)
            subgroup = self._read(Register.SUBGROUP)
            group_high = self._read(Register.GROUP_HIGH)
        except UnidentifiableDevice as e:
            logger.warning(f"Cannot identify device: {e}")
            return protocol.UNKNOWN

        type_str = parsing.format_device_type(group_low, subgroup, group_high)
        logger.debug(f"Identified device as {type_str}")
        return type_str

    def serial_number(self) -> str:
        """Serial number (not readable over this protocol variant)."""
        return protocol.UNKNOWN

    def firmware_version(self) -> str:
        """Firmware version (not readable over this protocol variant)."""
        return protocol.UNKNOWN

    def _read(self, register: Register) -> int:
        value = self._bus.query(register)
        if value is None:
            raise UnidentifiableDevice(f"register {register.name} (0x{register:02X}) absent")
        return value
