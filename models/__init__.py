from .attendance import (
    AttendanceEvent,
    AttendanceEventType,
    AttendanceLog,
    AttendanceRequest,
    Coordinate,
    LocationSample,
    ReferencePoint,
)
from .sensor import SensorError, SensorErrorKind, SensorState, WatchOptions
from .session import SessionContext
from .status import ActionOutcome, ActionRejection, AttendanceStatus, StatusSnapshot
