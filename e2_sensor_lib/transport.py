"""Serial transport layer for E2 bus communication."""

import logging
import time
from typing import Protocol

from e2_sensor_lib import protocol
from e2_sensor_lib.errors import TransportError

logger = logging.getLogger(__name__)


class SerialLike(Protocol):
    """Protocol for serial port interface (allows test doubles)."""

    def open(self) -> None:
        """Open the port using the settings it was created with."""
        ...

    def close(self) -> None:
        """Close serial port."""
        ...

    def write(self, data: bytes) -> int:
        """Write bytes to serial port."""
        ...

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes from serial port."""
        ...

    def flush(self) -> None:
        """Flush output buffer (force transmission)."""
        ...

    def reset_input_buffer(self) -> None:
        """Flush input buffer."""
        ...

    @property
    def port(self) -> str:
        """Device name of the port."""
        ...

    @property
    def in_waiting(self) -> int:
        """Number of bytes waiting in the input buffer."""
        ...

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        ...


class Transport:
    """Wrapper around pyserial for the half-duplex E2 link.

    The port is opened lazily and kept open until close() is called.
    Every failure of the underlying port is raised as TransportError.
    """

    def __init__(
        self,
        serial_port: SerialLike,
        open_delay_s: float = protocol.PORT_OPEN_DELAY,
        close_delay_s: float = protocol.PORT_CLOSE_DELAY,
    ) -> None:
        """Initialize transport with a serial port instance.

        Args:
            serial_port: Object implementing SerialLike protocol
                        (e.g., unopened serial.Serial or FakeSerial for testing)
            open_delay_s: Settle time after the port is opened
            close_delay_s: Settle time after the port is closed
        """
        self._port = serial_port
        self._open_delay_s = open_delay_s
        self._close_delay_s = close_delay_s

    @classmethod
    def for_port(cls, port: str, baud: int = protocol.DEFAULT_BAUD) -> "Transport":
        """Create a transport for a real serial port (requires pyserial).

        The port is configured but not opened. RTS and DTR are asserted,
        the module's line interface does not work without them.

        Args:
            port: Serial port device name (e.g., "/dev/ttyUSB0" or "COM3")
            baud: Baud rate. E2 interfaces run at 9600.

        Returns:
            Transport instance wrapping the unopened serial port

        Raises:
            TransportError: If pyserial is missing or rejects the settings
        """
        try:
            import serial  # type: ignore
        except ImportError as e:
            raise TransportError("pyserial not installed. Run: pip install pyserial") from e

        try:
            ser = serial.Serial()
            ser.port = port
            ser.baudrate = baud
            ser.bytesize = serial.EIGHTBITS
            ser.parity = serial.PARITY_NONE
            ser.stopbits = serial.STOPBITS_ONE
            ser.timeout = 0
            ser.rtscts = False
            ser.dsrdtr = False
            ser.xonxoff = False
            # Applied to the lines when the port opens
            ser.rts = True
            ser.dtr = True
        except Exception as e:
            raise TransportError(f"Invalid serial settings for {port} at {baud} baud: {e}") from e

        return cls(ser)

    def open(self) -> None:
        """Open the port if it is not open yet.

        Waits the open settle delay only when the port was actually opened.

        Raises:
            TransportError: If the port cannot be opened
        """
        if self._port.is_open:
            return

        try:
            self._port.open()
        except Exception as e:
            raise TransportError(f"Failed to open {self.name}: {e}") from e

        time.sleep(self._open_delay_s)
        logger.info(f"Opened {self.name} at {self.baudrate} baud")

    def close(self) -> None:
        """Close the port if it is open.

        Raises:
            TransportError: If closing fails
        """
        if not self._port.is_open:
            return

        try:
            self._port.close()
        except Exception as e:
            raise TransportError(f"Failed to close {self.name}: {e}") from e

        time.sleep(self._close_delay_s)
        logger.info(f"Closed {self.name}")

    @property
    def name(self) -> str:
        """Device name of the wrapped port, for logs and errors."""
        return str(getattr(self._port, "port", None) or "serial port")

    @property
    def baudrate(self) -> int:
        return getattr(self._port, "baudrate", protocol.DEFAULT_BAUD)

    @property
    def is_open(self) -> bool:
        """Check if port is currently open."""
        return self._port.is_open

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes to port.

        Args:
            data: Raw bytes to send

        Raises:
            TransportError: If the port is closed or the write fails
        """
        if not self._port.is_open:
            raise TransportError("Serial port is not open")

        try:
            sent = self._port.write(data)
            self._port.flush()
            logger.debug(f"Sent {sent} bytes: {protocol.format_frame(data)}")
        except Exception as e:
            raise TransportError(f"Failed to write to port: {e}") from e

    def read_available(self) -> bytes:
        """Read whatever bytes have arrived so far.

        Never waits for a complete frame.

        Returns:
            Received bytes, b"" if nothing is waiting

        Raises:
            TransportError: If the port is closed or the read fails
        """
        if not self._port.is_open:
            raise TransportError("Serial port is not open")

        try:
            waiting = self._port.in_waiting
            data = self._port.read(waiting) if waiting else b""
        except Exception as e:
            raise TransportError(f"Failed to read from port: {e}") from e

        logger.debug(f"Received {len(data)} bytes: {protocol.format_frame(data)}")
        return data

    def flush_input(self) -> None:
        """Discard all pending input from the module.

        Called before each command so a late response to an earlier
        register cannot be read as the answer to the next one.

        Raises:
            TransportError: If port is closed or the flush fails
        """
        if not self._port.is_open:
            raise TransportError("Serial port is not open")

        try:
            self._port.reset_input_buffer()
            logger.debug("Flushed input buffer")
        except Exception as e:
            raise TransportError(f"Failed to flush input: {e}") from e
