"""Dump raw E2 exchanges for every documented register.

Bypasses the driver's error handling and shows each command frame, the raw
bytes that came back and why a response was rejected.
"""

import argparse
import sys
import time

import serial

from e2_sensor_lib import protocol
from e2_sensor_lib.errors import FramingError
from e2_sensor_lib.protocol import Register


def diagnose_connection(port="/dev/ttyUSB0", delay_s=protocol.RESPONSE_SETTLE_DELAY):
    """Query each register once and print what happens on the wire."""

    print(f"\n=== Opening {port} ===")
    ser = serial.Serial()
    ser.port = port
    ser.baudrate = protocol.DEFAULT_BAUD
    ser.bytesize = serial.EIGHTBITS
    ser.parity = serial.PARITY_NONE
    ser.stopbits = serial.STOPBITS_ONE
    ser.timeout = 0
    ser.rts = True
    ser.dtr = True
    ser.open()
    time.sleep(protocol.PORT_OPEN_DELAY)
    print(f"Port opened: {ser.is_open}  RTS={ser.rts} DTR={ser.dtr}")

    stale = ser.read(ser.in_waiting)
    if stale:
        print(f"Discarded {len(stale)} stale bytes: {protocol.format_frame(stale)}")

    answered = 0
    print(f"\n=== Querying registers, settle delay {delay_s}s ===")
    for register in Register:
        command = protocol.encode_command(register)
        ser.write(command)
        ser.flush()
        time.sleep(delay_s)
        response = ser.read(ser.in_waiting)

        try:
            payload = protocol.check_response(response)
            verdict = f"OK payload=0x{payload:02X} ({payload})"
            answered += 1
        except FramingError as e:
            verdict = f"REJECTED ({e.fault.value})"

        print(
            f"{register.name:<17} TX: {protocol.format_frame(command)}  "
            f"RX: {protocol.format_frame(response) or '<nothing>'}  {verdict}"
        )

    print(f"\n{answered}/{len(Register)} registers answered")
    if answered == 0:
        print("\n*** NO VALID RESPONSES ***")
        print("\nPossible reasons:")
        print("1. Module not powered or not wired to the interface")
        print("2. RTS/DTR not driving the interface supply")
        print("3. Settle delay too short for this module (try --delay 0.6)")

    ser.close()
    print("\nPort closed")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("port", nargs="?", default="/dev/ttyUSB0")
    parser.add_argument("--delay", type=float, default=protocol.RESPONSE_SETTLE_DELAY,
                        help="Response settle delay in seconds")
    args = parser.parse_args()

    try:
        diagnose_connection(args.port, args.delay)
    except serial.SerialException as e:
        print(f"Serial error: {e}")
        sys.exit(1)
