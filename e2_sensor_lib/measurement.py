"""Measurement cycle: batch register reads folded into engineering units."""

import logging
import math
from typing import Dict, Optional, Tuple

from e2_sensor_lib import parsing, protocol
from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.errors import ProtocolStatusError
from e2_sensor_lib.models import CapabilitySet, MeasurementValues
from e2_sensor_lib.protocol import Register

logger = logging.getLogger(__name__)

# Low/high register pair for each channel, in query order
CHANNEL_REGISTERS: Dict[str, Tuple[Register, Register]] = {
    "humidity": (Register.HUMIDITY_LOW, Register.HUMIDITY_HIGH),
    "temperature": (Register.TEMPERATURE_LOW, Register.TEMPERATURE_HIGH),
    "value3": (Register.VALUE3_LOW, Register.VALUE3_HIGH),
    "value4": (Register.VALUE4_LOW, Register.VALUE4_HIGH),
}


class MeasurementDecoder:
    """Runs measurement cycles against one module.

    Humidity and temperature are always queried. The generic channels are
    queried only when the capability set reports them: value 3 carries air
    velocity, value 4 carries CO2. Without a capability set the generic
    channels are skipped.
    """

    def __init__(
        self,
        bus: RegisterBus,
        capabilities: Optional[CapabilitySet] = None,
    ) -> None:
        """Initialize decoder.

        Args:
            bus: Register bus to query
            capabilities: Result of a capability probe, or None to skip the
                         generic channels
        """
        self._bus = bus
        self.capabilities = capabilities

    def channels(self) -> Tuple[str, ...]:
        """Names of the channels queried in each cycle, in query order."""
        caps = self.capabilities
        names = ["humidity", "temperature"]
        if caps is not None and caps.air_velocity:
            names.append("value3")
        if caps is not None and caps.co2:
            names.append("value4")
        return tuple(names)

    def sample(self) -> MeasurementValues:
        """Run one measurement cycle.

        Queries each expected channel's low and high byte, then the status
        register. A status other than 0x00, including an unreadable status,
        invalidates every channel of the cycle. Otherwise each channel with
        both bytes present is decoded; channels missing a byte stay NaN.

        Returns:
            MeasurementValues for this cycle
        """
        raw: Dict[str, Tuple[Optional[int], Optional[int]]] = {}
        for name in self.channels():
            low_reg, high_reg = CHANNEL_REGISTERS[name]
            raw[name] = (self._bus.query(low_reg), self._bus.query(high_reg))

        status = self._bus.query(Register.STATUS)

        try:
            self._check_status(status)
        except ProtocolStatusError as e:
            logger.warning(f"Measurement cycle discarded: {e}")
            return MeasurementValues(status=status)

        values: Dict[str, float] = {}
        for name, (low, high) in raw.items():
            if name == "humidity":
                values[name] = parsing.decode_humidity(low, high)
            elif name == "temperature":
                values[name] = parsing.decode_temperature(low, high)
            else:
                values[name] = parsing.combine_bytes(low, high)

            if math.isnan(values[name]):
                logger.debug(f"Channel {name} unavailable (low={low}, high={high})")

        return MeasurementValues(status=status, **values)

    @staticmethod
    def _check_status(status: Optional[int]) -> None:
        if status != protocol.STATUS_OK:
            raise ProtocolStatusError(status)
