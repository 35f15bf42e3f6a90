"""Fake serial port that simulates an E+E Elektronik module behind an E2 interface.

The simulator answers 4-byte register read commands with 6-byte response
frames from a register map, and can be told to stay silent, corrupt frames,
or fail at the port level for specific registers.
"""

import logging
from typing import Dict, List, Optional, Set

from e2_sensor_lib import protocol
from e2_sensor_lib.protocol import Register

logger = logging.getLogger(__name__)


def encode_centikelvin(celsius: float) -> int:
    """Raw temperature register value for a Celsius reading."""
    return int(round((celsius + 273.15) * 100))


class FakeSerial:
    """Deterministic simulator of an E2 sensor module.

    Implements:
    - Register map lookup for each valid command frame
    - Response frames with correct checksum
    - No answer for unknown registers or malformed commands
    - Per-register faults: silence, bad checksum, NAK
    - Port-level faults: failing open, write and read

    Bytes written are answered immediately; in_waiting reports the pending
    response until it is read.
    """

    def __init__(
        self,
        humidity_pct: float = 45.5,
        temperature_c: float = 23.4,
        value3: int = 0,
        value4: int = 0,
        capabilities: int = 0x03,
        status: int = 0x00,
        group_low: int = 0x07,
        subgroup: int = 0x01,
        group_high: int = 0x55,
        port: str = "/dev/ttyFAKE0",
    ) -> None:
        """Initialize fake module.

        Args:
            humidity_pct: Relative humidity reported in %RH
            temperature_c: Temperature reported in degrees Celsius
            value3: Raw generic channel 3 value
            value4: Raw generic channel 4 value
            capabilities: Available-measurements bitmask
            status: Status register value (0x00 = good)
            group_low: Product group low byte
            subgroup: Output type (high nibble) and firmware type (low nibble)
            group_high: Product group high byte (0x55 = none)
            port: Device name reported to the transport
        """
        self.registers: Dict[int, int] = {
            Register.GROUP_LOW: group_low,
            Register.SUBGROUP: subgroup,
            Register.CAPABILITIES: capabilities,
            Register.GROUP_HIGH: group_high,
            Register.STATUS: status,
        }
        self.set_word(Register.HUMIDITY_LOW, Register.HUMIDITY_HIGH, int(round(humidity_pct * 100)))
        self.set_word(
            Register.TEMPERATURE_LOW,
            Register.TEMPERATURE_HIGH,
            encode_centikelvin(temperature_c),
        )
        self.set_word(Register.VALUE3_LOW, Register.VALUE3_HIGH, value3)
        self.set_word(Register.VALUE4_LOW, Register.VALUE4_HIGH, value4)

        # Fault injection
        self.silent_registers: Set[int] = set()
        self.corrupt_registers: Set[int] = set()
        self.nak_registers: Set[int] = set()
        self.fail_open = False
        self.fail_write = False
        self.fail_read = False
        # One-shot bytes that arrive right after the next answer
        self.noise_after_write = b""

        # Traffic log: register addresses in the order they were queried
        self.queried: List[int] = []
        self.open_count = 0
        self.close_count = 0

        self._rx = bytearray()  # bytes waiting for the host
        self.is_open = False
        self.port = port
        self.baudrate = protocol.DEFAULT_BAUD

        # Line state set by Transport.for_port on real ports
        self.rts = True
        self.dtr = True

    # ========================================================================
    # Register Map Helpers
    # ========================================================================

    def set_word(self, low_reg: int, high_reg: int, value: int) -> None:
        """Store a 16-bit value across a low/high register pair."""
        self.registers[low_reg] = value & 0xFF
        self.registers[high_reg] = (value >> 8) & 0xFF

    def queries_of(self, register: int) -> int:
        """Number of times register was queried."""
        return self.queried.count(register)

    # ========================================================================
    # SerialLike Interface
    # ========================================================================

    def open(self) -> None:
        """Open the fake serial port."""
        if self.fail_open:
            raise OSError("could not open port")
        self.is_open = True
        self.open_count += 1
        logger.debug("FakeSerial opened")

    def close(self) -> None:
        """Close the fake serial port."""
        self.is_open = False
        self.close_count += 1
        self._rx.clear()
        logger.debug("FakeSerial closed")

    def write(self, data: bytes) -> int:
        """Receive a command frame from the host and queue the answer."""
        if not self.is_open:
            raise RuntimeError("Port is closed")
        if self.fail_write:
            raise OSError("write failed")

        logger.debug(f"FakeSerial received: {protocol.format_frame(data)}")
        response = self._respond(bytes(data))
        if response:
            self._rx.extend(response)
        if self.noise_after_write:
            self._rx.extend(self.noise_after_write)
            self.noise_after_write = b""
        return len(data)

    def read(self, size: int = 1) -> bytes:
        """Read up to size pending bytes without waiting."""
        if not self.is_open:
            raise RuntimeError("Port is closed")
        if self.fail_read:
            raise OSError("read failed")

        data = bytes(self._rx[:size])
        del self._rx[:size]
        return data

    @property
    def in_waiting(self) -> int:
        if self.fail_read:
            raise OSError("read failed")
        return len(self._rx)

    def flush(self) -> None:
        """Flush output buffer (no-op, writes are answered immediately)."""
        pass

    def reset_input_buffer(self) -> None:
        """Discard bytes waiting for the host."""
        if self.fail_read:
            raise OSError("flush failed")
        self._rx.clear()
        logger.debug("FakeSerial input buffer flushed")

    def inject(self, data: bytes) -> None:
        """Queue arbitrary bytes for the host, e.g. line noise."""
        self._rx.extend(data)

    # ========================================================================
    # Internal: Command Handling
    # ========================================================================

    def _respond(self, command: bytes) -> Optional[bytes]:
        """Build the response for one command frame, None for no answer."""
        if len(command) != protocol.COMMAND_FRAME_SIZE:
            return None
        if command[0] != protocol.MARKER or command[1] != protocol.COMMAND_LENGTH_FIELD:
            return None
        if command[3] != protocol.checksum(command[:3]):
            return None

        address = command[2]
        self.queried.append(address)

        if address in self.silent_registers or address not in self.registers:
            return None

        frame = bytearray(protocol.build_response(self.registers[address]))
        if address in self.nak_registers:
            frame[2] = 0x15
            frame[5] = protocol.checksum(bytes(frame[:5]))
        if address in self.corrupt_registers:
            frame[5] = (frame[5] + 1) & 0xFF
        return bytes(frame)
