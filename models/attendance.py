from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic import Field as PydanticField
from sqlmodel import Field, Index, SQLModel

from utils.datetime_helpers import ensure_utc, format_utc_datetime


# A Latitude / Longitude Pair in Degrees (WGS84 range is not enforced)
class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = PydanticField(allow_inf_nan=False)
    longitude: float = PydanticField(allow_inf_nan=False)


# The Fixed Point Attendance Is Measured Against, w/ Allowed Radius
class ReferencePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: Coordinate
    radius_meters: float = PydanticField(gt=0, allow_inf_nan=False)


# One Successful Fix From the Sensor; Superseded By the Next One
class LocationSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinates: Coordinate
    captured_at: datetime = PydanticField(
        default_factory=lambda: datetime.now(timezone.utc)
    )


# Enum Limiting Event Type to Just Two Vals
class AttendanceEventType(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


# An Event As Written To The Ledger; Ordered By Server Timestamp
class AttendanceEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    type: AttendanceEventType
    coordinates: Coordinate
    server_timestamp: datetime

    @field_serializer("server_timestamp")
    def serialize_timestamp(self, dt: datetime) -> str:
        """Ensure timestamp is formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()


# Defines the Structure of Data for a Check In / Check Out Call
class AttendanceRequest(BaseModel):
    type: AttendanceEventType
    latitude: float = PydanticField(allow_inf_nan=False)
    longitude: float = PydanticField(allow_inf_nan=False)


# Defines a Table "attendance_log" w/ Cols user_id, event_type, timestamp, ...
class AttendanceLog(SQLModel, table=True):
    __tablename__ = "attendance_log"

    __table_args__ = (
        Index("ix_attendance_log_user_id", "user_id"),
        Index("ix_attendance_log_timestamp", "timestamp"),
        # Last-event lookups filter by user and sort by time
        Index("ix_attendance_log_user_id_timestamp", "user_id", "timestamp"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str
    event_type: AttendanceEventType
    latitude: float
    longitude: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def serialize_timestamp(self, dt: datetime) -> str:
        """Ensure timestamp is formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()

    def to_event(self) -> AttendanceEvent:
        return AttendanceEvent(
            user_id=self.user_id,
            type=self.event_type,
            coordinates=Coordinate(latitude=self.latitude, longitude=self.longitude),
            server_timestamp=ensure_utc(self.timestamp),
        )
