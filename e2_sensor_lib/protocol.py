"""Wire protocol constants and frame codec for the E+E Elektronik E2 bus.

Every exchange is a single register read: the host sends a 4-byte command
frame naming a register address, the module answers with a 6-byte frame
carrying one payload byte.

    command:  [B=0x51] [L=0x01] [D=address] [C]
    response: [B=0x51] [L=0x03] [S=0x06] [F=0x00] [payload] [C]

The checksum [C] is the low byte of the sum of all preceding bytes.
"""

from enum import IntEnum
from typing import Final

from e2_sensor_lib.errors import FramingError
from e2_sensor_lib.models import FrameFault

# ============================================================================
# Frame Layout
# ============================================================================

MARKER: Final[int] = 0x51  # [B] start of every frame, both directions
COMMAND_LENGTH_FIELD: Final[int] = 0x01  # [L] in command frames
RESPONSE_LENGTH_FIELD: Final[int] = 0x03  # [L] in response frames
STATUS_ACK: Final[int] = 0x06  # [S] module acknowledged the command
RESERVED: Final[int] = 0x00  # [F]

COMMAND_FRAME_SIZE: Final[int] = 4
RESPONSE_FRAME_SIZE: Final[int] = 6
PAYLOAD_INDEX: Final[int] = 4

# ============================================================================
# Register Addresses
# ============================================================================


class Register(IntEnum):
    """Readable registers (E2 control bytes)."""

    GROUP_LOW = 0x11
    SUBGROUP = 0x21
    CAPABILITIES = 0x31
    GROUP_HIGH = 0x41
    STATUS = 0x71
    HUMIDITY_LOW = 0x81
    HUMIDITY_HIGH = 0x91
    TEMPERATURE_LOW = 0xA1
    TEMPERATURE_HIGH = 0xB1
    VALUE3_LOW = 0xC1
    VALUE3_HIGH = 0xD1
    VALUE4_LOW = 0xE1
    VALUE4_HIGH = 0xF1


# Status register value for a good measurement cycle
STATUS_OK: Final[int] = 0x00

# Group high byte values meaning "no high byte"
GROUP_HIGH_SENTINELS: Final[frozenset[int]] = frozenset({0x55, 0xFF})

# Capability bitmask layout (bit 0 = least significant)
CAP_BIT_HUMIDITY: Final[int] = 0
CAP_BIT_TEMPERATURE: Final[int] = 1
CAP_BIT_AIR_VELOCITY: Final[int] = 2
CAP_BIT_CO2: Final[int] = 3

# ============================================================================
# Identification
# ============================================================================

MANUFACTURER: Final[str] = "E+E Elektronik"

# Reported for anything that cannot be read from the module
UNKNOWN: Final[str] = "???"

# ============================================================================
# Serial Settings and Timing (seconds)
# ============================================================================

DEFAULT_BAUD: Final[int] = 9600

# Wait after sending a command before reading the response. Modules are slow
# to answer, this dominates the cost of every register read.
RESPONSE_SETTLE_DELAY: Final[float] = 0.4

# Wait after opening and after closing the port
PORT_OPEN_DELAY: Final[float] = 0.1
PORT_CLOSE_DELAY: Final[float] = 0.1


# ============================================================================
# Frame Codec
# ============================================================================


def checksum(data: bytes) -> int:
    """Low byte of the sum of all bytes in data."""
    return sum(data) & 0xFF


def encode_command(address: int) -> bytes:
    """Build the command frame that reads one register.

    Args:
        address: Register address (0-255)

    Returns:
        4-byte command frame

    Raises:
        ValueError: If address does not fit in one byte
    """
    if not (0 <= address <= 0xFF):
        raise ValueError(f"Register address must be 0-255, got {address}")

    head = bytes((MARKER, COMMAND_LENGTH_FIELD, address))
    return head + bytes((checksum(head),))


def build_response(payload: int) -> bytes:
    """Build the response frame a healthy module sends for payload.

    Args:
        payload: Register value (0-255)

    Returns:
        6-byte response frame
    """
    if not (0 <= payload <= 0xFF):
        raise ValueError(f"Payload must be 0-255, got {payload}")

    head = bytes((MARKER, RESPONSE_LENGTH_FIELD, STATUS_ACK, RESERVED, payload))
    return head + bytes((checksum(head),))


def check_response(frame: bytes) -> int:
    """Validate a response frame and return its payload byte.

    Rules are checked in order and the first failure wins. There is no
    partial acceptance.

    Args:
        frame: Bytes captured from the transport after a command

    Returns:
        Payload byte

    Raises:
        FramingError: If any rule fails, carrying the matching FrameFault
    """
    if len(frame) != RESPONSE_FRAME_SIZE:
        raise FramingError(FrameFault.LENGTH, frame)
    if frame[0] != MARKER:
        raise FramingError(FrameFault.MARKER, frame)
    if frame[1] != RESPONSE_LENGTH_FIELD:
        raise FramingError(FrameFault.LENGTH_FIELD, frame)
    if frame[2] != STATUS_ACK:
        raise FramingError(FrameFault.NAK, frame)
    if frame[3] != RESERVED:
        raise FramingError(FrameFault.RESERVED, frame)
    if frame[5] != checksum(frame[:5]):
        raise FramingError(FrameFault.CHECKSUM, frame)

    return frame[PAYLOAD_INDEX]


def is_valid_response(frame: bytes) -> bool:
    """Check a response frame without raising."""
    try:
        check_response(frame)
    except FramingError:
        return False
    return True


def format_frame(frame: bytes) -> str:
    """Render a frame as space-separated hex for logs, e.g. '51 01 81 D3'."""
    return " ".join(f"{b:02X}" for b in frame)
