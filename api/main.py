"""FastAPI REST interface for a single E2 sensor module.

Single-process, single-sensor lifecycle with thread-safe access to one
E2Sensor driver. Every read endpoint talks to the module synchronously, so
latency is roughly (number of registers) x (settle delay).

Error mapping:
- InvalidConfigValue → 400
- TransportError → 503
- Not connected → 503
"""

import logging
import os
from threading import RLock
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from e2_sensor_lib import E2Sensor, __version__
from e2_sensor_lib.errors import InvalidConfigValue, TransportError

# =============================================================================
# Environment Configuration
# =============================================================================

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "9160"))
DEFAULT_SERIAL_PORT = os.getenv("SERIAL_PORT", "/dev/ttyUSB0")
DEFAULT_SERIAL_BAUD = int(os.getenv("SERIAL_BAUD", "9600"))
DEFAULT_SETTLE_DELAY_S = float(os.getenv("E2_SETTLE_DELAY_S", "0.4"))
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# =============================================================================
# Global Singletons
# =============================================================================

_sensor: Optional[E2Sensor] = None
_lock = RLock()  # Protects connect/disconnect and bus access

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="E2 Sensor API",
    description="REST interface for E+E Elektronik sensor modules on the E2 bus",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Request/Response Models
# =============================================================================

class StatusResponse(BaseModel):
    """Response for GET /status."""
    connected: bool
    port_open: bool
    port: Optional[str]
    settle_delay_s: Optional[float]


class ConnectResponse(BaseModel):
    """Response for POST /connect."""
    status: str
    port: str


class ValuesResponse(BaseModel):
    """Response for GET /values. Unavailable channels are null."""
    ts: str
    valid: bool
    status: Optional[int]
    humidity: Optional[float]
    temperature: Optional[float]
    value3: Optional[float]
    value4: Optional[float]


class IdentityResponse(BaseModel):
    """Response for GET /identity."""
    manufacturer: str
    instrument_type: str
    serial_number: str
    firmware_version: str
    port: str
    instrument_id: str


class CapabilitiesResponse(BaseModel):
    """Response for GET /capabilities."""
    humidity: bool
    temperature: bool
    air_velocity: bool
    co2: bool
    raw: Optional[int]


class SettleDelayRequest(BaseModel):
    """Request body for PUT /settle-delay."""
    settle_delay_s: float


class SettleDelayResponse(BaseModel):
    """Response for GET/PUT /settle-delay."""
    settle_delay_s: float


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(InvalidConfigValue)
async def invalid_config_handler(request: Request, exc: InvalidConfigValue):
    """Map InvalidConfigValue to 400 Bad Request."""
    logger.error(f"InvalidConfigValue: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    """Map TransportError to 503 Service Unavailable."""
    logger.error(f"TransportError: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def _require_sensor() -> E2Sensor:
    """Return the connected sensor or fail with 503."""
    if _sensor is None:
        raise HTTPException(status_code=503, detail="Not connected")
    return _sensor


# =============================================================================
# Service Endpoints
# =============================================================================

@app.get("/")
async def root():
    """Service info."""
    return {
        "service": "E2 Sensor API",
        "version": __version__,
        "status": "online",
    }


@app.get("/status", response_model=StatusResponse)
async def get_status():
    """Get connection state without touching the bus."""
    sensor = _sensor
    if sensor is None:
        return StatusResponse(connected=False, port_open=False, port=None, settle_delay_s=None)

    return StatusResponse(
        connected=True,
        port_open=sensor.is_open(),
        port=sensor.port,
        settle_delay_s=sensor.settle_delay_s,
    )


# =============================================================================
# Lifecycle Endpoints
# =============================================================================

@app.post("/connect", response_model=ConnectResponse)
def connect(
    port: str = Query(DEFAULT_SERIAL_PORT, description="Serial port (e.g., /dev/ttyUSB0)"),
    baud: int = Query(DEFAULT_SERIAL_BAUD, description="Baud rate"),
    settle_delay_s: Optional[float] = Query(None, description="Response settle delay (s)"),
):
    """Create the driver for a serial port.

    The port itself is opened by the first register read.

    Raises:
        400: If already connected or settle delay is invalid
        503: If the port cannot be configured (TransportError)
    """
    global _sensor

    with _lock:
        if _sensor is not None:
            raise HTTPException(
                status_code=400,
                detail="Already connected. Disconnect first."
            )

        delay = DEFAULT_SETTLE_DELAY_S if settle_delay_s is None else settle_delay_s
        logger.info(f"Connecting to {port} at {baud} baud, settle delay {delay}s...")
        _sensor = E2Sensor(port, baud=baud, settle_delay_s=delay)

        return ConnectResponse(status="connected", port=_sensor.port)


@app.post("/disconnect")
def disconnect():
    """Close the serial port and drop the driver."""
    global _sensor

    with _lock:
        if _sensor is None:
            return {"status": "disconnected"}

        sensor, _sensor = _sensor, None
        sensor.close()
        logger.info(f"Disconnected from {sensor.port}")
        return {"status": "disconnected"}


# =============================================================================
# Sensor Endpoints (block on the bus)
# =============================================================================

@app.get("/values", response_model=ValuesResponse)
def get_values():
    """Run one measurement cycle."""
    with _lock:
        sensor = _require_sensor()
        values = sensor.get_values()

    return ValuesResponse(
        ts=values.ts.isoformat(),
        valid=values.valid,
        status=values.status,
        **values.as_dict(),
    )


@app.get("/identity", response_model=IdentityResponse)
def get_identity():
    """Read the module's identification registers."""
    with _lock:
        sensor = _require_sensor()
        instrument_type = sensor.instrument_type

        return IdentityResponse(
            manufacturer=sensor.manufacturer,
            instrument_type=instrument_type,
            serial_number=sensor.serial_number,
            firmware_version=sensor.firmware_version,
            port=sensor.port,
            instrument_id=sensor.format_instrument_id(instrument_type),
        )


@app.get("/capabilities", response_model=CapabilitiesResponse)
def get_capabilities(refresh: bool = Query(False, description="Re-read the bitmask register")):
    """Get the channels present on the module."""
    with _lock:
        sensor = _require_sensor()
        caps = sensor.refresh_capabilities() if refresh else sensor.capabilities

    return CapabilitiesResponse(
        humidity=caps.humidity,
        temperature=caps.temperature,
        air_velocity=caps.air_velocity,
        co2=caps.co2,
        raw=caps.raw,
    )


@app.get("/settle-delay", response_model=SettleDelayResponse)
async def get_settle_delay():
    """Get the response settle delay."""
    sensor = _require_sensor()
    return SettleDelayResponse(settle_delay_s=sensor.settle_delay_s)


@app.put("/settle-delay", response_model=SettleDelayResponse)
def set_settle_delay(body: SettleDelayRequest):
    """Change the response settle delay.

    Raises:
        400: If the delay is negative or not finite (InvalidConfigValue)
    """
    with _lock:
        sensor = _require_sensor()
        sensor.settle_delay_s = body.settle_delay_s
        return SettleDelayResponse(settle_delay_s=sensor.settle_delay_s)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT)
