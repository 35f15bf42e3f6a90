"""Tests for capability probing and device identification."""

import pytest

from e2_sensor_lib.bus import RegisterBus
from e2_sensor_lib.capability import CapabilityProbe
from e2_sensor_lib.identity import DeviceIdentifier
from e2_sensor_lib.protocol import Register
from e2_sensor_lib.transport import Transport
from fakes.fake_serial import FakeSerial


@pytest.fixture
def fake_serial() -> FakeSerial:
    return FakeSerial(capabilities=0x0D, group_low=0x0A, subgroup=0x12, group_high=0x00)


@pytest.fixture
def bus(fake_serial: FakeSerial) -> RegisterBus:
    transport = Transport(fake_serial, open_delay_s=0, close_delay_s=0)
    return RegisterBus(transport, settle_delay_s=0)


# =============================================================================
# CapabilityProbe
# =============================================================================

def test_probe_decodes_bitmask(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test the bitmask register maps onto the four flags."""
    caps = CapabilityProbe(bus).probe()

    assert caps.humidity
    assert not caps.temperature
    assert caps.air_velocity
    assert caps.co2
    assert caps.raw == 0x0D
    assert fake_serial.queried == [Register.CAPABILITIES]


def test_probe_failure_assumes_nothing(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test an unreadable bitmask reports every channel absent."""
    fake_serial.silent_registers.add(Register.CAPABILITIES)

    caps = CapabilityProbe(bus).probe()

    assert not caps.humidity
    assert not caps.temperature
    assert not caps.air_velocity
    assert not caps.co2
    assert not caps.detected


def test_probe_is_rederivable(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test probing again reflects the register's current value."""
    probe = CapabilityProbe(bus)
    assert probe.probe().co2

    fake_serial.registers[Register.CAPABILITIES] = 0x03
    assert not probe.probe().co2


# =============================================================================
# DeviceIdentifier
# =============================================================================

def test_identify_formats_type(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test group/subgroup registers decode to EE10-1 FT2."""
    assert DeviceIdentifier(bus).identify() == "EE10-1 FT2"
    assert fake_serial.queried == [Register.GROUP_LOW, Register.SUBGROUP, Register.GROUP_HIGH]


@pytest.mark.parametrize("sentinel", [0x55, 0xFF])
def test_identify_group_high_sentinel(
    bus: RegisterBus, fake_serial: FakeSerial, sentinel: int
) -> None:
    """Test a sentinel group high byte does not shift the series."""
    fake_serial.registers[Register.GROUP_HIGH] = sentinel

    assert DeviceIdentifier(bus).identify() == "EE10-1 FT2"


def test_identify_large_series(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test a real group high byte builds a three-digit series."""
    fake_serial.registers[Register.GROUP_LOW] = 0x2C
    fake_serial.registers[Register.GROUP_HIGH] = 0x01
    fake_serial.registers[Register.SUBGROUP] = 0x03

    assert DeviceIdentifier(bus).identify() == "EE300 FT3"


@pytest.mark.parametrize(
    "missing, expected_queries",
    [
        (Register.GROUP_LOW, [Register.GROUP_LOW]),
        (Register.SUBGROUP, [Register.GROUP_LOW, Register.SUBGROUP]),
        (Register.GROUP_HIGH, [Register.GROUP_LOW, Register.SUBGROUP, Register.GROUP_HIGH]),
    ],
)
def test_identify_any_missing_register_gives_placeholder(
    bus: RegisterBus, fake_serial: FakeSerial, missing: Register, expected_queries: list
) -> None:
    """Test partial identification is never reported and reading stops early."""
    fake_serial.silent_registers.add(missing)

    assert DeviceIdentifier(bus).identify() == "???"
    assert fake_serial.queried == expected_queries


def test_serial_and_firmware_are_placeholders(bus: RegisterBus, fake_serial: FakeSerial) -> None:
    """Test serial number and firmware version are not read from the module."""
    identifier = DeviceIdentifier(bus)

    assert identifier.serial_number() == "???"
    assert identifier.firmware_version() == "???"
    assert fake_serial.queried == []
