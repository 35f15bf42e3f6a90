"""Tests for the E2Sensor driver facade."""

import math
import threading

import pytest

from e2_sensor_lib import E2Sensor
from e2_sensor_lib.errors import InvalidConfigValue
from e2_sensor_lib.protocol import Register
from e2_sensor_lib.transport import Transport
from fakes.fake_serial import FakeSerial


@pytest.fixture
def fake_serial() -> FakeSerial:
    return FakeSerial(
        humidity_pct=52.25,
        temperature_c=21.5,
        value3=250,
        value4=640,
        capabilities=0x0B,
        group_low=0x0A,
        subgroup=0x12,
        group_high=0xFF,
    )


@pytest.fixture
def sensor(fake_serial: FakeSerial) -> E2Sensor:
    transport = Transport(fake_serial, open_delay_s=0, close_delay_s=0)
    return E2Sensor(" COM3 ", settle_delay_s=0, transport=transport)


def test_construct_does_not_touch_port(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test the driver only opens the port on the first read."""
    assert not sensor.is_open()
    assert fake_serial.queried == []


def test_port_and_manufacturer(sensor: E2Sensor) -> None:
    """Test static identification properties."""
    assert sensor.port == "COM3"
    assert sensor.manufacturer == "E+E Elektronik"


def test_instrument_id(sensor: E2Sensor) -> None:
    """Test the one-line identification string."""
    assert sensor.instrument_type == "EE10-1 FT2"
    assert sensor.serial_number == "???"
    assert sensor.firmware_version == "???"
    assert sensor.instrument_id == "EE10-1 FT2 ??? SN:??? @ COM3"


def test_format_instrument_id_reads_no_registers(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test the id can be built from a type string without another bus read."""
    assert sensor.format_instrument_id("EE07 FT1") == "EE07 FT1 ??? SN:??? @ COM3"
    assert sensor.instrument_id == sensor.format_instrument_id(sensor.instrument_type)

    fake_serial.queried.clear()
    sensor.format_instrument_id("EE10-1 FT2")
    assert fake_serial.queried == []


def test_instrument_type_is_not_cached(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test identification is re-read on every access."""
    assert sensor.instrument_type == "EE10-1 FT2"

    fake_serial.silent_registers.add(Register.SUBGROUP)
    assert sensor.instrument_type == "???"
    assert sensor.instrument_id == "??? ??? SN:??? @ COM3"

    fake_serial.silent_registers.clear()
    assert sensor.instrument_type == "EE10-1 FT2"
    assert fake_serial.queries_of(Register.GROUP_LOW) == 4


def test_get_values_probes_capabilities_once(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test capabilities are probed at first use and cached."""
    first = sensor.get_values()
    second = sensor.get_values()

    assert fake_serial.queries_of(Register.CAPABILITIES) == 1
    for values in (first, second):
        assert values.valid
        assert values.humidity == pytest.approx(52.25)
        assert values.temperature == pytest.approx(21.5)
        # 0x0B: CO2 present, air velocity absent
        assert math.isnan(values.value3)
        assert values.value4 == 640.0


def test_refresh_capabilities(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test re-probing picks up a changed bitmask for later cycles."""
    assert not sensor.capabilities.air_velocity

    fake_serial.registers[Register.CAPABILITIES] = 0x0F
    assert not sensor.capabilities.air_velocity  # still cached
    assert sensor.refresh_capabilities().air_velocity

    assert sensor.get_values().value3 == 250.0


def test_failed_probe_still_reads_basic_channels(
    sensor: E2Sensor, fake_serial: FakeSerial
) -> None:
    """Test a silent bitmask register only drops the generic channels."""
    fake_serial.silent_registers.add(Register.CAPABILITIES)

    values = sensor.get_values()

    assert values.humidity == pytest.approx(52.25)
    assert math.isnan(values.value4)


def test_status_error_reported_as_unavailable(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test a device status error never raises from get_values."""
    fake_serial.registers[Register.STATUS] = 0x04

    values = sensor.get_values()

    assert not values.valid
    assert math.isnan(values.humidity)


def test_settle_delay_property(sensor: E2Sensor) -> None:
    """Test the settle delay can be read and adjusted."""
    assert sensor.settle_delay_s == 0

    sensor.settle_delay_s = 0.15
    assert sensor.settle_delay_s == 0.15

    with pytest.raises(InvalidConfigValue):
        sensor.settle_delay_s = -1


def test_close_and_reopen(sensor: E2Sensor, fake_serial: FakeSerial) -> None:
    """Test close is explicit and a later read reopens the port."""
    sensor.get_values()
    assert sensor.is_open()

    sensor.close()
    assert not sensor.is_open()

    assert sensor.get_values().valid
    assert fake_serial.open_count == 2


def test_default_transport_uses_for_port(
    fake_serial: FakeSerial, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test the driver builds its transport from the port name."""
    calls = []

    def mock_for_port(port: str, baud: int = 9600) -> Transport:
        calls.append((port, baud))
        return Transport(fake_serial, open_delay_s=0, close_delay_s=0)

    monkeypatch.setattr(Transport, "for_port", mock_for_port)

    sensor = E2Sensor("/dev/ttyUSB1", baud=9600, settle_delay_s=0)

    assert calls == [("/dev/ttyUSB1", 9600)]
    assert sensor.instrument_type == "EE10-1 FT2"


def test_concurrent_callers_do_not_interleave(sensor: E2Sensor) -> None:
    """Test cycles from several threads all decode cleanly."""
    results = []

    def worker() -> None:
        for _ in range(5):
            results.append(sensor.get_values())

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 20
    assert all(v.valid for v in results)
    assert all(v.humidity == pytest.approx(52.25) for v in results)
