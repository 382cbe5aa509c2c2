import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException, status
from sqlmodel import Session, select

from models.attendance import AttendanceEventType, AttendanceLog, ReferencePoint
from utils.geofence import haversine_dist

logger = logging.getLogger(__name__)


class AttendanceService:

    @staticmethod
    def last_event(user_id: str, session: Session) -> Optional[AttendanceLog]:
        # id breaks ties between events stamped in the same instant
        return session.exec(
            select(AttendanceLog)
            .where(AttendanceLog.user_id == user_id)
            .order_by(AttendanceLog.timestamp.desc(), AttendanceLog.id.desc())
            .limit(1)
        ).first()

    @staticmethod
    def history(user_id: str, session: Session) -> List[AttendanceLog]:
        return list(
            session.exec(
                select(AttendanceLog)
                .where(AttendanceLog.user_id == user_id)
                .order_by(AttendanceLog.timestamp.desc(), AttendanceLog.id.desc())
            ).all()
        )

    @staticmethod
    def record_event(
        user_id: str,
        event_type: AttendanceEventType,
        latitude: float,
        longitude: float,
        session: Session,
        reference: ReferencePoint,
    ):
        # Server assigns the timestamp; client clocks are not trusted for ordering
        request_time = datetime.now(timezone.utc)

        # 0) Must supply location
        if latitude is None or longitude is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Location required to record attendance.",
            )

        # 1) Check-in must happen inside the geofence; check-out may happen anywhere
        if event_type == AttendanceEventType.CHECK_IN:
            distance = haversine_dist(
                latitude,
                longitude,
                reference.point.latitude,
                reference.point.longitude,
            )
            if distance > reference.radius_meters:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=(
                        f"You are too far to check in. You must be within "
                        f"{reference.radius_meters:g} meters (currently {distance:.1f}m)."
                    ),
                )

        # 2) Event order validation against the most recent event
        last = AttendanceService.last_event(user_id, session)
        if event_type == AttendanceEventType.CHECK_IN:
            if last is not None and last.event_type == AttendanceEventType.CHECK_IN:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Already checked in.",
                )
        else:
            if last is None or last.event_type != AttendanceEventType.CHECK_IN:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Cannot check out before checking in.",
                )

        entry = AttendanceLog(
            user_id=user_id,
            event_type=event_type,
            latitude=latitude,
            longitude=longitude,
            timestamp=request_time,
        )
        session.add(entry)
        session.commit()
        session.refresh(entry)

        logger.info(f"[LEDGER] Stored {event_type.value} for {user_id} (id {entry.id})")
        return {"status": "success", "data": entry}
