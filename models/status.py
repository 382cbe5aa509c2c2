from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.attendance import AttendanceEventType


# Exactly One Of These Holds At Any Instant
class AttendanceStatus(str, Enum):
    PENDING = "Acquiring Location..."
    SENSOR_ERROR = "Location Error"
    CHECKED_IN = "Checked In"
    IN_RANGE = "In Range"
    OUT_OF_RANGE = "Out of Range"


class StatusSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: AttendanceStatus
    # Only set when a current sample exists and no sensor error holds
    distance_meters: Optional[float] = None
    message: Optional[str] = None
    online: bool = True
    write_in_flight: bool = False


class ActionRejection(str, Enum):
    NOT_ALLOWED = "not_allowed"
    OUT_OF_RANGE = "out_of_range"
    OFFLINE = "offline"
    IN_FLIGHT = "in_flight"
    LEDGER_FAILURE = "ledger_failure"
    CLOSED = "closed"


class ActionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: AttendanceEventType
    accepted: bool
    rejection: Optional[ActionRejection] = None
    message: Optional[str] = None
