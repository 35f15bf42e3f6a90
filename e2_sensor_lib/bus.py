"""Register-level request/response exchanges on the E2 bus."""

import logging
import math
import threading
import time
from typing import Optional

from e2_sensor_lib import protocol
from e2_sensor_lib.errors import E2Error, FramingError, InvalidConfigValue, TransportError
from e2_sensor_lib.transport import Transport

logger = logging.getLogger(__name__)


class RegisterBus:
    """Reads single registers from one E2 module.

    Each query is one command/response exchange: send the command frame,
    wait the response settle delay, read what arrived, validate. Transport
    and framing failures are reported as an absent result (None) rather than
    raised, so callers can decide which values a missing byte disqualifies.

    Exchanges on one instance are serialized by a lock.
    """

    def __init__(
        self,
        transport: Transport,
        settle_delay_s: float = protocol.RESPONSE_SETTLE_DELAY,
    ) -> None:
        """Initialize bus.

        Args:
            transport: Transport owned by this bus (opened on first query)
            settle_delay_s: Wait between command and response read

        Raises:
            InvalidConfigValue: If settle_delay_s is negative or not finite
        """
        self._transport = transport
        self._settle_delay_s = self._check_delay(settle_delay_s)
        self._lock = threading.Lock()
        self._last_error: Optional[E2Error] = None

    @property
    def transport(self) -> Transport:
        """Transport used for all exchanges."""
        return self._transport

    @property
    def settle_delay_s(self) -> float:
        """Response settle delay in seconds."""
        return self._settle_delay_s

    @settle_delay_s.setter
    def settle_delay_s(self, value: float) -> None:
        self._settle_delay_s = self._check_delay(value)
        logger.info(f"Response settle delay set to {self._settle_delay_s:.3f}s")

    @property
    def last_error(self) -> Optional[E2Error]:
        """Error behind the most recent absent result, None after a success."""
        return self._last_error

    def query(self, address: int) -> Optional[int]:
        """Read one register.

        Args:
            address: Register address, normally a protocol.Register member

        Returns:
            Payload byte, or None if the exchange failed for any reason
        """
        command = protocol.encode_command(address)

        with self._lock:
            try:
                self._transport.open()
                # Late answers to earlier commands must not pass as this one's
                self._transport.flush_input()
                self._transport.write_bytes(command)
                time.sleep(self._settle_delay_s)
                response = self._transport.read_available()
                payload = protocol.check_response(response)
            except (TransportError, FramingError) as e:
                self._last_error = e
                logger.debug(f"Register 0x{address:02X} absent: {e}")
                return None

            self._last_error = None
            logger.debug(f"Register 0x{address:02X} = 0x{payload:02X}")
            return payload

    def close(self) -> None:
        """Close the transport. The next query reopens it.

        Raises:
            TransportError: If closing fails
        """
        with self._lock:
            self._transport.close()

    @staticmethod
    def _check_delay(value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise InvalidConfigValue(f"Settle delay must be a finite number >= 0, got {value}")
        return float(value)
