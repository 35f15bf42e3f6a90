"""High-level driver for a single E+E Elektronik module on an E2 interface."""

import logging
import threading
from typing import Optional

from e2_sensor_lib import protocol
from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.capability import CapabilityProbe
from e2_sensor_lib.identity import DeviceIdentifier
from e2_sensor_lib.measurement import MeasurementDecoder
from e2_sensor_lib.models import CapabilitySet, MeasurementValues
from e2_sensor_lib.transport import Transport

logger = logging.getLogger(__name__)


class E2Sensor:
    """Driver orchestrating capability detection, identification and sampling.

    Each instance exclusively owns one transport. The port is opened by the
    first register read and stays open until close(). Identification
    properties are re-read from the module on every access and are best
    read while no measurement is running.
    """

    def __init__(
        self,
        port: str,
        baud: int = protocol.DEFAULT_BAUD,
        settle_delay_s: float = protocol.RESPONSE_SETTLE_DELAY,
        transport: Optional[Transport] = None,
    ) -> None:
        """Initialize driver. Does not touch the port.

        Args:
            port: Serial port name (e.g., "/dev/ttyUSB0")
            baud: Baud rate. Default 9600.
            settle_delay_s: Wait between each command and its response
            transport: Pre-configured Transport (for testing). If given,
                      baud is ignored.

        Raises:
            TransportError: If the serial port cannot be configured
            InvalidConfigValue: If settle_delay_s is negative
        """
        self._port_name = port.strip()
        if transport is None:
            transport = Transport.for_port(self._port_name, baud)

        self._bus = RegisterBus(transport, settle_delay_s=settle_delay_s)
        self._probe = CapabilityProbe(self._bus)
        self._identifier = DeviceIdentifier(self._bus)
        self._decoder = MeasurementDecoder(self._bus)
        self._capabilities: Optional[CapabilitySet] = None

        # Keeps multi-register sequences from interleaving
        self._lock = threading.RLock()

    # ========================================================================
    # Measurement
    # ========================================================================

    def get_values(self) -> MeasurementValues:
        """Run one measurement cycle.

        Probes capabilities first if that has not happened yet.

        Returns:
            MeasurementValues, unavailable channels as NaN
        """
        with self._lock:
            self._decoder.capabilities = self.capabilities
            values = self._decoder.sample()
            logger.debug(f"Sampled {values.as_dict()} status={values.status}")
            return values

    @property
    def capabilities(self) -> CapabilitySet:
        """Channels present on the module, probed once and cached."""
        with self._lock:
            if self._capabilities is None:
                self._capabilities = self._probe.probe()
            return self._capabilities

    def refresh_capabilities(self) -> CapabilitySet:
        """Re-read the capability bitmask, replacing the cached result."""
        with self._lock:
            self._capabilities = self._probe.probe()
            return self._capabilities

    # ========================================================================
    # Identification
    # ========================================================================

    @property
    def port(self) -> str:
        """Serial port name this driver talks to."""
        return self._port_name

    @property
    def manufacturer(self) -> str:
        return protocol.MANUFACTURER

    @property
    def instrument_type(self) -> str:
        """Product type string read from the module, "???" if unreadable."""
        with self._lock:
            return self._identifier.identify()

    @property
    def serial_number(self) -> str:
        return self._identifier.serial_number()

    @property
    def firmware_version(self) -> str:
        return self._identifier.firmware_version()

    @property
    def instrument_id(self) -> str:
        """One-line identification, e.g. "EE07 FT1 ??? SN:??? @ COM3"."""
        return self.format_instrument_id(self.instrument_type)

    def format_instrument_id(self, instrument_type: str) -> str:
        """Build the one-line identification from an already-read type string.

        Lets callers that also report the type read the registers only once.
        """
        return (
            f"{instrument_type} {self.firmware_version} "
            f"SN:{self.serial_number} @ {self.port}"
        )

    # ========================================================================
    # Connection and Timing
    # ========================================================================

    @property
    def settle_delay_s(self) -> float:
        """Response settle delay in seconds."""
        return self._bus.settle_delay_s

    @settle_delay_s.setter
    def settle_delay_s(self, value: float) -> None:
        self._bus.settle_delay_s = value

    def is_open(self) -> bool:
        """Check if the serial port is currently open."""
        return self._bus.transport.is_open

    def close(self) -> None:
        """Close the serial port. A later read reopens it.

        Raises:
            TransportError: If closing fails
        """
        with self._lock:
            self._bus.close()
            logger.info(f"Closed E2 sensor on {self._port_name}")
