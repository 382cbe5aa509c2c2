from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.attendance import ReferencePoint
from models.status import AttendanceStatus, StatusSnapshot
from services.connectivity import OFFLINE_MESSAGE


class ScreenAction(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    RETRY = "retry"


# What The Check-In Screen Shows For One Status
class StatusContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    button_text: str
    button_enabled: bool
    action: Optional[ScreenAction] = None
    distance_text: str = "--"
    banner: Optional[str] = None


def render_status_content(snapshot: StatusSnapshot, reference: ReferencePoint) -> StatusContent:
    radius = reference.radius_meters
    distance_text = (
        f"{snapshot.distance_meters:.2f}m" if snapshot.distance_meters is not None else "--"
    )
    banner = None if snapshot.online else OFFLINE_MESSAGE
    # Submit control stays unavailable while a write is pending
    busy = snapshot.write_in_flight

    if snapshot.status == AttendanceStatus.PENDING:
        content = dict(
            title="Locating...",
            message="Acquiring your precise location.",
            button_text="Please Wait...",
            button_enabled=False,
        )
    elif snapshot.status == AttendanceStatus.SENSOR_ERROR:
        content = dict(
            title="Location Error",
            message=snapshot.message or "",
            button_text="Retry Location",
            button_enabled=True,
            action=ScreenAction.RETRY,
        )
    elif snapshot.status == AttendanceStatus.CHECKED_IN:
        content = dict(
            title="Checked In",
            message="You are currently present on campus.",
            button_text="Recording..." if busy else "Check Out",
            button_enabled=not busy,
            action=ScreenAction.CHECK_OUT,
        )
    elif snapshot.status == AttendanceStatus.IN_RANGE:
        content = dict(
            title="You're Here!",
            message="You are within the check-in zone.",
            button_text="Recording..." if busy else "Check In Now",
            button_enabled=not busy,
            action=ScreenAction.CHECK_IN,
        )
    else:
        content = dict(
            title="Out of Range",
            message=f"Move within {radius:g}m to check in.",
            button_text="Too Far to Check In",
            button_enabled=False,
        )

    return StatusContent(distance_text=distance_text, banner=banner, **content)
