#!/usr/bin/env python3
"""
Runbook: E2 Sampling Test
Expected: identification string, capability flags, then one valid
measurement per cycle for the configured duration
"""

import math
import time

from e2_sensor_lib import E2Sensor

# ============================================================================
# CONFIGURATION - EDIT THIS
# ============================================================================
SERIAL_PORT = "/dev/ttyUSB0"  # Change to your port
BAUD_RATE = 9600
SETTLE_DELAY_S = 0.4
CYCLES = 10
CYCLE_INTERVAL_S = 2.0

# ============================================================================
# TEST SCRIPT - DO NOT EDIT BELOW
# ============================================================================

print("=" * 70)
print("E2 Runbook: Sampling Validation")
print("=" * 70)
print(f"Port: {SERIAL_PORT}")
print(f"Baud: {BAUD_RATE}")
print(f"Settle delay: {SETTLE_DELAY_S}s")
print(f"Cycles: {CYCLES} every {CYCLE_INTERVAL_S}s")
print()

sensor = E2Sensor(SERIAL_PORT, baud=BAUD_RATE, settle_delay_s=SETTLE_DELAY_S)


def fmt(value: float, unit: str) -> str:
    return "n/a" if math.isnan(value) else f"{value:.2f}{unit}"


try:
    # Step 1: Identify
    print("[1/3] Identifying module...")
    print(f"      Manufacturer: {sensor.manufacturer}")
    print(f"      ID: {sensor.instrument_id}")
    print()

    # Step 2: Capabilities
    print("[2/3] Probing capabilities...")
    caps = sensor.capabilities
    print(f"      Humidity: {caps.humidity}")
    print(f"      Temperature: {caps.temperature}")
    print(f"      Air velocity: {caps.air_velocity}")
    print(f"      CO2: {caps.co2}")
    print()

    # Step 3: Sample
    print(f"[3/3] Sampling {CYCLES} cycles...")
    valid_count = 0
    start_time = time.time()

    for i in range(CYCLES):
        values = sensor.get_values()
        elapsed = time.time() - start_time
        if values.valid:
            valid_count += 1
        print(f"      [{elapsed:5.1f}s] #{i + 1}: "
              f"RH={fmt(values.humidity, '%')} "
              f"T={fmt(values.temperature, 'C')} "
              f"v3={fmt(values.value3, '')} "
              f"v4={fmt(values.value4, '')} "
              f"status={values.status}")
        time.sleep(CYCLE_INTERVAL_S)

    print()
    print(f"      Valid cycles: {valid_count}/{CYCLES}")
    if valid_count == CYCLES:
        print("✓ PASS: All cycles valid")
    else:
        print("✗ FAIL: Some cycles were invalidated or unanswered")

finally:
    sensor.close()
    print()
    print("Port closed.")
    print("=" * 70)
