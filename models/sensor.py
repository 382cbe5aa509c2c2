from enum import Enum

from pydantic import BaseModel, ConfigDict


# Platform Error Codes (W3C Geolocation API)
PERMISSION_DENIED_CODE = 1
POSITION_UNAVAILABLE_CODE = 2
TIMEOUT_CODE = 3


class SensorErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


SENSOR_ERROR_MESSAGES = {
    SensorErrorKind.PERMISSION_DENIED: (
        "Location permission denied. Please enable location access in your settings."
    ),
    SensorErrorKind.POSITION_UNAVAILABLE: "Location information is unavailable.",
    SensorErrorKind.TIMEOUT: (
        "The request to get your location timed out. "
        "Move to an open area with a clear view of the sky and retry."
    ),
    SensorErrorKind.UNSUPPORTED: "Geolocation is not supported by this device.",
    SensorErrorKind.UNKNOWN: "An unknown error occurred.",
}

_CODE_TO_KIND = {
    PERMISSION_DENIED_CODE: SensorErrorKind.PERMISSION_DENIED,
    POSITION_UNAVAILABLE_CODE: SensorErrorKind.POSITION_UNAVAILABLE,
    TIMEOUT_CODE: SensorErrorKind.TIMEOUT,
}


class SensorError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SensorErrorKind
    message: str

    @classmethod
    def of(cls, kind: SensorErrorKind) -> "SensorError":
        return cls(kind=kind, message=SENSOR_ERROR_MESSAGES[kind])

    @classmethod
    def from_platform_code(cls, code: int) -> "SensorError":
        """Classify a platform-reported error code; unrecognised codes become UNKNOWN."""
        return cls.of(_CODE_TO_KIND.get(code, SensorErrorKind.UNKNOWN))

    @classmethod
    def unsupported(cls) -> "SensorError":
        return cls.of(SensorErrorKind.UNSUPPORTED)


class SensorState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    ERROR = "error"


# Options Handed To The Platform When A Watch Starts
class WatchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    high_accuracy: bool = True
    timeout_ms: int = 10000
    # 0 means a cached fix is never reused
    max_cached_age_ms: int = 0
