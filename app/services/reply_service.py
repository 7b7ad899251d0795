# app/services/reply_service.py

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pydantic
from sqlalchemy.orm import Session

from app.models.appointment import Appointment, AppointmentStatus
from app.schemas.webhook import InboundMessage
from app.utils.clock import Clock, clock as default_clock
from app.utils.validators import normalize_phone

logger = logging.getLogger("webhook")

CONFIRM_TOKENS = {"yes", "confirm"}
CANCEL_TOKENS = {"no", "cancel"}


@dataclass
class ReconcileResult:
    confirmed: List[int] = field(default_factory=list)
    cancelled: List[int] = field(default_factory=list)
    unchanged: List[int] = field(default_factory=list)
    unmatched: int = 0
    ignored: int = 0
    failed: int = 0


def iter_messages(payload: Any) -> Iterator[Any]:
    """Walk entry[].changes[].value.messages[], tolerating missing levels."""
    if not isinstance(payload, dict):
        return
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            if not isinstance(change, dict):
                continue
            value = change.get("value") or {}
            if not isinstance(value, dict):
                continue
            for message in value.get("messages") or []:
                yield message


def interpret(message: InboundMessage) -> Tuple[Optional[AppointmentStatus], Optional[int]]:
    """Map a reply to (target status, explicit appointment id)."""
    appointment_id = None
    if message.type == "button" and message.button and message.button.payload:
        token, _, suffix = message.button.payload.strip().partition("-")
        if suffix.strip().isdigit():
            appointment_id = int(suffix.strip())
    elif message.text is not None:
        token = message.text.body
    else:
        return None, None

    token = token.strip().strip(".!").lower()
    if token in CONFIRM_TOKENS:
        return AppointmentStatus.CONFIRMED, appointment_id
    if token in CANCEL_TOKENS:
        return AppointmentStatus.CANCELLED, appointment_id
    return None, None


class ReplyReconciler:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or default_clock

    def find_target(self, db: Session, phone: str, appointment_id: Optional[int]) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.status == AppointmentStatus.SCHEDULED)
        if appointment_id is not None:
            return query.filter(Appointment.id == appointment_id).first()
        return query.filter(Appointment.phone == phone).order_by(
            Appointment.date.desc(), Appointment.id.desc()
        ).first()

    def apply(self, db: Session, appointment: Appointment, target: AppointmentStatus) -> bool:
        """Conditional write: only a still-scheduled appointment changes."""
        values: Dict[Any, Any] = {Appointment.status: target}
        if target == AppointmentStatus.CANCELLED:
            values[Appointment.cancelled_at] = self.clock.utcnow()

        changed = db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == AppointmentStatus.SCHEDULED,
        ).update(values, synchronize_session=False)
        db.commit()
        return changed == 1

    def handle_message(self, db: Session, raw: Any, result: ReconcileResult) -> None:
        try:
            message = InboundMessage.model_validate(raw)
        except pydantic.ValidationError as e:
            logger.warning(f"Ignoring malformed message: {e.errors()}")
            result.ignored += 1
            return

        target, appointment_id = interpret(message)
        if target is None:
            logger.info(f"Ignoring reply from {message.from_} ({message.type})")
            result.ignored += 1
            return

        phone = normalize_phone(message.from_)
        appointment = self.find_target(db, phone, appointment_id)
        if appointment is None:
            logger.info(f"No scheduled appointment for {message.from_}")
            result.unmatched += 1
            return

        if self.apply(db, appointment, target):
            logger.info(f"Appointment {appointment.id} updated to {target.value}")
            bucket = result.confirmed if target == AppointmentStatus.CONFIRMED else result.cancelled
            bucket.append(appointment.id)
        else:
            logger.info(f"Appointment {appointment.id} changed concurrently, reply ignored")
            result.unchanged.append(appointment.id)

    def reconcile(self, db: Session, payload: Any) -> ReconcileResult:
        result = ReconcileResult()
        for raw in iter_messages(payload):
            try:
                self.handle_message(db, raw, result)
            except Exception:
                db.rollback()
                logger.exception("Failed to process webhook message")
                result.failed += 1
        return result


reply_reconciler = ReplyReconciler()
