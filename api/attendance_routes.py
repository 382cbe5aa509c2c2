from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from core.config import get_reference_point
from core.deps import require_same_user
from db.session import get_session
from models.attendance import AttendanceRequest, ReferencePoint
from services.attendance_service import AttendanceService

router = APIRouter()

# --- Pydantic Models for Response ---


class ReferenceGeofenceResponse(BaseModel):
    center_lat: float
    center_lng: float
    radius_meters: float


# --- API Endpoints ---


@router.get("/reference", response_model=ReferenceGeofenceResponse)
def get_reference_geofence(
    reference: ReferencePoint = Depends(get_reference_point),
):
    """
    Retrieve the fixed point (latitude, longitude, radius) attendance is measured against.
    """
    return ReferenceGeofenceResponse(
        center_lat=reference.point.latitude,
        center_lng=reference.point.longitude,
        radius_meters=reference.radius_meters,
    )


# Check In / Check Out Endpoint
@router.post("/users/{user_id}/events")
def record_event(
    user_id: str,
    data: AttendanceRequest,
    user: Annotated[dict, Depends(require_same_user)],
    session: Session = Depends(get_session),
    reference: ReferencePoint = Depends(get_reference_point),
):
    return AttendanceService.record_event(
        user_id=user_id,
        event_type=data.type,
        latitude=data.latitude,
        longitude=data.longitude,
        session=session,
        reference=reference,
    )


# Get Last Event
@router.get("/users/{user_id}/last")
def get_last_event(
    user_id: str,
    user: Annotated[dict, Depends(require_same_user)],
    session: Session = Depends(get_session),
):
    last_event = AttendanceService.last_event(user_id, session)

    # An empty ledger is a successful answer, not a 404
    if not last_event:
        return {"status": "success", "data": None, "message": "No attendance events found."}

    return {"status": "success", "data": last_event}


# Get All Events, Newest First
@router.get("/users/{user_id}/history")
def get_history(
    user_id: str,
    user: Annotated[dict, Depends(require_same_user)],
    session: Session = Depends(get_session),
):
    return {"status": "success", "data": AttendanceService.history(user_id, session)}
