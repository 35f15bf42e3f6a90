"""Custom exceptions for the E2 sensor library."""

from typing import Optional

from e2_sensor_lib.models import FrameFault


class E2Error(Exception):
    """Base exception for all E2 sensor library errors."""

    pass


class TransportError(E2Error):
    """Raised when serial communication fails (open, write or read)."""

    pass


class FramingError(E2Error):
    """Raised when a response frame fails validation.

    Attributes:
        fault: Which validation rule rejected the frame.
        frame: The rejected bytes as received.
    """

    def __init__(self, fault: FrameFault, frame: bytes = b"") -> None:
        self.fault = fault
        self.frame = bytes(frame)
        super().__init__(f"{fault.value}: {self.frame.hex(' ') or '<empty>'}")


class ProtocolStatusError(E2Error):
    """Raised when the status register invalidates a measurement cycle."""

    def __init__(self, status: Optional[int]) -> None:
        self.status = status
        if status is None:
            super().__init__("Status register could not be read")
        else:
            super().__init__(f"Device reported status 0x{status:02X}")


class UnidentifiableDevice(E2Error):
    """Raised when a register needed for identification is absent."""

    pass


class InvalidConfigValue(E2Error):
    """Raised when attempting to set an invalid configuration parameter."""

    pass
