# app/services/conflict_service.py

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.appointment import Appointment, AppointmentStatus, INACTIVE_STATUSES
from app.utils import time_slots
from app.utils.exceptions import ConflictError, ValidationError

logger = logging.getLogger("scheduling")

# Never block a therapist's time: inactive records plus unassigned requests
EXEMPT_STATUSES = INACTIVE_STATUSES | {AppointmentStatus.PENDING_ASSIGNMENT}


class ConflictChecker:
    @staticmethod
    def validate_interval(start_time: str, end_time: str) -> int:
        """Parse both ends and require a positive duration; returns minutes."""
        try:
            minutes = time_slots.duration(start_time, end_time)
        except time_slots.MalformedTimeError as e:
            field = "start_time"
            try:
                time_slots.to_minutes(start_time)
                field = "end_time"
            except time_slots.MalformedTimeError:
                pass
            raise ValidationError(str(e), field=field)

        if minutes <= 0:
            raise ValidationError(
                f"End time {end_time} must be after start time {start_time}",
                field="end_time"
            )
        return minutes

    @staticmethod
    def active_appointments(
        db: Session,
        therapist_id: int,
        appointment_date: date,
        exclude_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Appointments that currently hold the therapist's time on that day."""
        query = db.query(Appointment).filter(
            Appointment.therapist_id == therapist_id,
            Appointment.date == appointment_date,
            Appointment.status.notin_(list(EXEMPT_STATUSES)),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.id).all()

    @staticmethod
    def find_conflict(
        db: Session,
        therapist_id: Optional[int],
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        if therapist_id is None:
            return None

        for existing in ConflictChecker.active_appointments(db, therapist_id, appointment_date, exclude_id):
            try:
                if time_slots.overlaps(start_time, end_time, existing.start_time, existing.end_time):
                    return existing
            except time_slots.MalformedTimeError:
                logger.warning(
                    f"Skipping appointment {existing.id} with unparseable slot "
                    f"{existing.start_time!r}-{existing.end_time!r}"
                )
        return None

    @staticmethod
    def has_conflict(
        db: Session,
        therapist_id: Optional[int],
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[int] = None,
    ) -> bool:
        return ConflictChecker.find_conflict(
            db, therapist_id, appointment_date, start_time, end_time, exclude_id
        ) is not None

    @staticmethod
    def ensure_available(
        db: Session,
        therapist_id: Optional[int],
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = ConflictChecker.find_conflict(
            db, therapist_id, appointment_date, start_time, end_time, exclude_id
        )
        if existing is not None:
            logger.info(
                f"Conflict for therapist {therapist_id} on {appointment_date} "
                f"{start_time}-{end_time} with appointment {existing.id}"
            )
            raise ConflictError.for_appointment(existing)
