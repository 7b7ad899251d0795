# app/services/reminder_service.py

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from sqlalchemy.orm import Session

from app.config.database import SessionLocal
from app.models.appointment import Appointment, AppointmentStatus
from app.services.lock_service import SlotLockManager, reminder_key, slot_locks
from app.services.twilio_service import twilio_service
from app.utils.clock import Clock, clock as default_clock

logger = logging.getLogger("reminders")


class ReminderSender(Protocol):
    def send_appointment_reminder(
        self, phone: str, service_name: str, formatted_date: str, start_time: str
    ) -> bool:
        ...


@dataclass
class ReminderRunResult:
    found: int = 0
    sent: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class ReminderDispatcher:
    """
    One tick of the daily reminder job: remind every scheduled appointment
    dated tomorrow, at most once per appointment per calendar day.
    """

    def __init__(
        self,
        sender: Optional[ReminderSender] = None,
        clock: Optional[Clock] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        locks: Optional[SlotLockManager] = None,
    ):
        self.sender = sender or twilio_service
        self.clock = clock or default_clock
        self.session_factory = session_factory
        self.locks = locks or slot_locks

    def due_appointments(self, db: Session) -> List[Appointment]:
        start, end = self.clock.tomorrow_window()
        return db.query(Appointment).filter(
            Appointment.date >= start.date(),
            Appointment.date < end.date(),
            Appointment.status == AppointmentStatus.SCHEDULED,
        ).order_by(Appointment.id).all()

    def run_once(self) -> ReminderRunResult:
        logger.info(f"Reminder job triggered at {self.clock.now().isoformat()}")
        result = ReminderRunResult()

        db = self.session_factory()
        try:
            appointment_ids = [a.id for a in self.due_appointments(db)]
        finally:
            db.close()

        result.found = len(appointment_ids)
        logger.info(f"Found {result.found} appointments for tomorrow")

        for appointment_id in appointment_ids:
            try:
                outcome = self.remind(appointment_id)
            except Exception:
                logger.exception(f"Reminder failed for appointment {appointment_id}")
                outcome = "failed"
            getattr(result, outcome).append(appointment_id)

        logger.info(
            f"Reminder run finished: {len(result.sent)} sent, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    def remind(self, appointment_id: int) -> str:
        """Returns "sent", "skipped" or "failed"."""
        with self.locks.hold(reminder_key(appointment_id)):
            db = self.session_factory()
            try:
                appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
                if appointment is None or appointment.status != AppointmentStatus.SCHEDULED:
                    return "skipped"

                if self.clock.same_day(appointment.last_reminder_sent):
                    logger.info(f"Reminder already sent today for {appointment_id}, skipping")
                    return "skipped"

                if not appointment.phone:
                    logger.warning(f"No phone number for appointment {appointment_id}")
                    return "failed"

                service_name = appointment.service.name if appointment.service else "Therapy"
                delivered = self.sender.send_appointment_reminder(
                    appointment.phone,
                    service_name,
                    appointment.formatted_date,
                    appointment.start_time,
                )
                if not delivered:
                    logger.error(f"Reminder not delivered for appointment {appointment_id}")
                    return "failed"

                # Counter and timestamp land in one statement
                db.query(Appointment).filter(Appointment.id == appointment_id).update(
                    {
                        Appointment.reminders_sent: Appointment.reminders_sent + 1,
                        Appointment.last_reminder_sent: self.clock.utcnow(),
                    },
                    synchronize_session=False
                )
                db.commit()
                logger.info(f"Reminder sent for appointment {appointment_id}")
                return "sent"
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
