import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from models.attendance import Coordinate, ReferencePoint
from models.sensor import WatchOptions

# Load environment variables from .env file
load_dotenv()

# Campus Reference Point (used when the env does not override it)
DEFAULT_REFERENCE_LATITUDE = 26.158299181572236
DEFAULT_REFERENCE_LONGITUDE = 32.72355294496741
DEFAULT_ALLOWED_RADIUS_METERS = 100.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "t", "yes")


@dataclass(frozen=True)
class AppConfig:
    reference: ReferencePoint
    watch_options: WatchOptions = field(default_factory=WatchOptions)
    connectivity_probe_url: Optional[str] = None
    ledger_base_url: str = "http://127.0.0.1:8000"
    log_level: str = "INFO"


def load_config() -> AppConfig:
    """Build the process-wide configuration from environment variables."""
    radius = _env_float("ALLOWED_RADIUS_METERS", DEFAULT_ALLOWED_RADIUS_METERS)
    if radius <= 0:
        raise ValueError(f"ALLOWED_RADIUS_METERS must be greater than 0, got {radius}")

    reference = ReferencePoint(
        point=Coordinate(
            latitude=_env_float("REFERENCE_LATITUDE", DEFAULT_REFERENCE_LATITUDE),
            longitude=_env_float("REFERENCE_LONGITUDE", DEFAULT_REFERENCE_LONGITUDE),
        ),
        radius_meters=radius,
    )

    watch_options = WatchOptions(
        high_accuracy=_env_bool("LOCATION_HIGH_ACCURACY", True),
        timeout_ms=_env_int("LOCATION_TIMEOUT_MS", 10000),
        max_cached_age_ms=_env_int("LOCATION_MAX_CACHED_AGE_MS", 0),
    )

    return AppConfig(
        reference=reference,
        watch_options=watch_options,
        connectivity_probe_url=os.getenv("CONNECTIVITY_PROBE_URL") or None,
        ledger_base_url=os.getenv("LEDGER_BASE_URL", "http://127.0.0.1:8000"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


# Loaded once; immutable thereafter
@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return load_config()


def get_reference_point() -> ReferencePoint:
    return get_config().reference
