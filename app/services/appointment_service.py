import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.appointment import (
    Appointment,
    AppointmentStatus,
    MANUAL_STATUSES,
    PaymentMethod,
    SubmissionChannel,
    can_transition,
)
from app.models.appointment_request import AppointmentRequest, RequestStatus
from app.models.user import User, UserRole
from app.schemas.appointment import (
    AppointmentUpdate,
    PublicAppointmentCreate,
    RescheduleRequest,
    SlotSummary,
    StaffAppointmentCreate,
)
from app.schemas.appointment_request import AppointmentRequestCreate, RequestConversion
from app.services.conflict_service import ConflictChecker
from app.services.directory_service import DirectoryService
from app.services.lock_service import slot_key, slot_locks
from app.utils import time_slots
from app.utils.clock import clock
from app.utils.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.utils.validators import normalize_phone, sanitize_text

logger = logging.getLogger("scheduling")

TIME_FIELDS = ("date", "start_time", "end_time", "therapist_id")


class AppointmentService:

    @staticmethod
    def require_staff(actor: Optional[User], action: str = "perform this action"):
        if actor is None or not actor.is_staff:
            raise ForbiddenError(f"Not authorized to {action}")

    @staticmethod
    def require_staff_or_therapist(actor: Optional[User], appointment: Appointment, action: str):
        if actor is None:
            raise ForbiddenError(f"Not authorized to {action}")
        if actor.is_staff:
            return
        if actor.role == UserRole.THERAPIST and appointment.therapist_id == actor.id:
            return
        raise ForbiddenError(f"Not authorized to {action}")

    @staticmethod
    def can_view(actor: Optional[User], appointment: Appointment) -> bool:
        if actor is None:
            return False
        if actor.is_staff:
            return True
        if actor.role == UserRole.THERAPIST:
            return appointment.therapist_id == actor.id
        if appointment.user_id == actor.id:
            return True
        return appointment.patient is not None and appointment.patient.parent_id == actor.id

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: int) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError(f"Appointment with ID {appointment_id} not found")
        return appointment

    @staticmethod
    def get_appointment(db: Session, appointment_id: int, actor: Optional[User]) -> Appointment:
        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        if not AppointmentService.can_view(actor, appointment):
            raise ForbiddenError("Not authorized to view this appointment")
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        actor: Optional[User],
        appointment_date: Optional[date] = None,
        therapist_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Appointment]:
        if actor is None or not (actor.is_staff or actor.role == UserRole.THERAPIST):
            raise ForbiddenError("Not authorized to list appointments")

        query = db.query(Appointment)

        # Therapists only ever see their own book
        if actor.role == UserRole.THERAPIST:
            therapist_id = actor.id
        if therapist_id is not None:
            query = query.filter(Appointment.therapist_id == therapist_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if appointment_date is not None:
            query = query.filter(Appointment.date == appointment_date)
        if status:
            query = query.filter(Appointment.status == AppointmentService.parse_status(status))

        appointments = query.order_by(Appointment.date, Appointment.id).all()
        return sorted(appointments, key=AppointmentService._sort_key)

    @staticmethod
    def _sort_key(appointment: Appointment):
        try:
            minutes = time_slots.to_minutes(appointment.start_time)
        except time_slots.MalformedTimeError:
            minutes = 24 * 60
        return appointment.date, minutes, appointment.id

    @staticmethod
    def parse_status(value: str) -> AppointmentStatus:
        try:
            return AppointmentStatus(value)
        except ValueError:
            raise ValidationError(f"Invalid status '{value}'", field="status")

    @staticmethod
    def resolve_end_time(start_time: str, end_time: Optional[str]) -> str:
        if end_time:
            return end_time
        try:
            return time_slots.slot_end(start_time)
        except time_slots.MalformedTimeError as e:
            raise ValidationError(str(e), field="start_time")

    @staticmethod
    def _persist_checked(db: Session, appointment: Appointment) -> Appointment:
        """Conflict check and commit inside the therapist/day lock."""
        ConflictChecker.validate_interval(appointment.start_time, appointment.end_time)

        if appointment.therapist_id is None or appointment.status == AppointmentStatus.PENDING_ASSIGNMENT:
            db.add(appointment)
            db.commit()
            db.refresh(appointment)
            return appointment

        with slot_locks.hold(slot_key(appointment.therapist_id, appointment.date)):
            ConflictChecker.ensure_available(
                db,
                appointment.therapist_id,
                appointment.date,
                appointment.start_time,
                appointment.end_time,
            )
            db.add(appointment)
            db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def create_appointment(db: Session, data: StaffAppointmentCreate, actor: Optional[User]) -> Appointment:
        AppointmentService.require_staff(actor, "create appointments")

        patient = DirectoryService.get_patient(db, data.patient_id)
        therapist = DirectoryService.get_therapist(db, data.therapist_id)
        DirectoryService.get_service(db, data.service_id)

        now = clock.utcnow()
        appointment = Appointment(
            user_id=patient.parent_id,
            patient_id=patient.id,
            therapist_id=therapist.id,
            service_id=data.service_id,
            patient_name=patient.full_name,
            father_name=patient.parent_name,
            phone=normalize_phone(patient.parent_phone),
            email=patient.parent.email if patient.parent else None,
            date=data.date,
            start_time=data.start_time.strip(),
            end_time=data.end_time.strip(),
            type=data.type,
            consultation_mode=data.consultation_mode,
            channel=SubmissionChannel.STAFF,
            status=AppointmentStatus.SCHEDULED,
            notes=data.notes or "",
            address=data.address or "",
            consent=data.consent,
            payment_amount=data.payment.amount,
            payment_method=data.payment.method,
            payment_status=data.payment.status,
            total_sessions=data.total_sessions,
            sessions_paid=data.sessions_paid,
            assigned_by=actor.id,
            assigned_at=now,
            created_by=actor.id,
        )
        appointment = AppointmentService._persist_checked(db, appointment)
        logger.info(
            f"Booked appointment {appointment.id} for therapist {therapist.id} "
            f"on {appointment.date} {appointment.start_time}-{appointment.end_time}"
        )
        return appointment

    @staticmethod
    def create_public_appointment(
        db: Session,
        data: PublicAppointmentCreate,
        actor: Optional[User] = None,
    ) -> Appointment:
        DirectoryService.get_service(db, data.service_id)
        therapist = None
        if data.therapist_id is not None:
            therapist = DirectoryService.get_therapist(db, data.therapist_id)

        start_time = data.start_time.strip()
        end_time = AppointmentService.resolve_end_time(start_time, data.end_time)
        ConflictChecker.validate_interval(start_time, end_time)

        guardian = actor if actor is not None and actor.role == UserRole.PARENT else \
            DirectoryService.resolve_guardian(db, data.parent_name, data.phone, data.email)
        patient = DirectoryService.resolve_patient(
            db, guardian, data.child_name, data.date_of_birth, data.gender
        )

        appointment = Appointment(
            user_id=guardian.id,
            patient_id=patient.id,
            therapist_id=therapist.id if therapist else None,
            service_id=data.service_id,
            patient_name=patient.full_name,
            father_name=data.parent_name,
            phone=normalize_phone(data.phone),
            email=data.email,
            date=data.date,
            start_time=start_time,
            end_time=end_time,
            type=data.type,
            consultation_mode=data.consultation_mode,
            channel=SubmissionChannel.PUBLIC,
            status=AppointmentStatus.SCHEDULED if therapist else AppointmentStatus.PENDING_ASSIGNMENT,
            notes=sanitize_text(data.notes or ""),
            consent=data.consent,
            created_by=actor.id if actor else guardian.id,
        )
        try:
            appointment = AppointmentService._persist_checked(db, appointment)
        except Exception:
            db.rollback()
            raise
        logger.info(f"Public booking {appointment.id} stored as {appointment.status.value}")
        return appointment

    @staticmethod
    def submit_request(db: Session, data: AppointmentRequestCreate, actor: Optional[User]) -> AppointmentRequest:
        if actor is None:
            raise ForbiddenError("Sign in to submit an appointment request")

        request = AppointmentRequest(
            mother_name=data.mother_name,
            father_name=data.father_name,
            child_name=data.child_name,
            phone=normalize_phone(data.phone),
            email=data.email,
            child_age=data.child_age,
            service_type=data.service_type,
            preferred_date=data.preferred_date,
            preferred_time=data.preferred_time.strip(),
            payment_method=data.payment_method,
            notes=data.notes or "",
            status=RequestStatus.PENDING,
            created_by=actor.id,
        )
        db.add(request)
        db.commit()
        db.refresh(request)
        logger.info(f"Appointment request {request.id} submitted by user {actor.id}")
        return request

    @staticmethod
    def list_pending_requests(db: Session, actor: Optional[User]) -> List[AppointmentRequest]:
        AppointmentService.require_staff(actor, "view appointment requests")
        return db.query(AppointmentRequest).filter(
            AppointmentRequest.status == RequestStatus.PENDING
        ).order_by(AppointmentRequest.created_at, AppointmentRequest.id).all()

    @staticmethod
    def get_request(db: Session, request_id: int) -> AppointmentRequest:
        request = db.query(AppointmentRequest).filter(AppointmentRequest.id == request_id).first()
        if not request:
            raise NotFoundError(f"Appointment request with ID {request_id} not found")
        return request

    @staticmethod
    def convert_request(
        db: Session,
        request_id: int,
        data: RequestConversion,
        actor: Optional[User],
    ) -> Appointment:
        AppointmentService.require_staff(actor, "convert appointment requests")

        request = AppointmentService.get_request(db, request_id)
        if request.status != RequestStatus.PENDING:
            raise ValidationError(
                f"Request {request_id} is already {request.status.value}", field="status"
            )

        therapist = DirectoryService.get_therapist(db, data.therapist_id)
        DirectoryService.get_service(db, data.service_id)

        guardian = request.creator or DirectoryService.resolve_guardian(
            db, request.father_name, request.phone, request.email
        )
        patient = DirectoryService.resolve_patient(db, guardian, request.child_name)

        start_time = (data.start_time or request.preferred_time).strip()
        end_time = AppointmentService.resolve_end_time(start_time, data.end_time)

        try:
            payment_method = PaymentMethod(request.payment_method)
        except ValueError:
            payment_method = PaymentMethod.NOT_SPECIFIED
        if data.payment.method != PaymentMethod.NOT_SPECIFIED:
            payment_method = data.payment.method

        now = clock.utcnow()
        appointment = Appointment(
            user_id=guardian.id,
            patient_id=patient.id,
            therapist_id=therapist.id,
            service_id=data.service_id,
            request_id=request.id,
            patient_name=patient.full_name,
            father_name=request.father_name,
            phone=normalize_phone(request.phone),
            email=request.email,
            date=data.date or request.preferred_date,
            start_time=start_time,
            end_time=end_time,
            type=data.type,
            channel=SubmissionChannel.CONVERTED,
            status=AppointmentStatus.SCHEDULED,
            notes=data.notes or request.notes or "",
            consent=True,
            payment_amount=data.payment.amount,
            payment_method=payment_method,
            payment_status=data.payment.status,
            total_sessions=data.total_sessions,
            assigned_by=actor.id,
            assigned_at=now,
            created_by=actor.id,
        )

        ConflictChecker.validate_interval(appointment.start_time, appointment.end_time)
        with slot_locks.hold(slot_key(therapist.id, appointment.date)):
            ConflictChecker.ensure_available(
                db, therapist.id, appointment.date, appointment.start_time, appointment.end_time
            )
            db.add(appointment)
            db.flush()
            request.status = RequestStatus.CONVERTED
            request.appointment_id = appointment.id
            db.commit()
        db.refresh(appointment)
        logger.info(f"Converted request {request.id} into appointment {appointment.id}")
        return appointment

    @staticmethod
    def cancel_request(db: Session, request_id: int, actor: Optional[User]) -> AppointmentRequest:
        request = AppointmentService.get_request(db, request_id)
        if actor is None or not (actor.is_staff or request.created_by == actor.id):
            raise ForbiddenError("Not authorized to cancel this request")
        if request.status != RequestStatus.PENDING:
            raise ValidationError(
                f"Request {request_id} is already {request.status.value}", field="status"
            )
        request.status = RequestStatus.CANCELLED
        db.commit()
        db.refresh(request)
        return request

    @staticmethod
    def _apply_status(appointment: Appointment, target: AppointmentStatus) -> None:
        current = appointment.status
        if current == target:
            return
        if not can_transition(current, target):
            raise ValidationError(
                f"Cannot change status from {current.value} to {target.value}", field="status"
            )
        if target == AppointmentStatus.SCHEDULED and appointment.therapist_id is None:
            raise ValidationError("Assign a therapist before scheduling", field="therapist_id")

        appointment.status = target
        now = clock.utcnow()
        if target == AppointmentStatus.CANCELLED:
            appointment.cancelled_at = now
        elif target == AppointmentStatus.COMPLETED:
            appointment.completed_at = now
            appointment.sessions_completed = (appointment.sessions_completed or 0) + 1

    @staticmethod
    def update_status(db: Session, appointment_id: int, status: str, actor: Optional[User]) -> Appointment:
        target = AppointmentService.parse_status(status)
        if target not in MANUAL_STATUSES:
            allowed = ", ".join(sorted(s.value for s in MANUAL_STATUSES))
            raise ValidationError(f"Valid status is required ({allowed})", field="status")

        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        AppointmentService.require_staff_or_therapist(actor, appointment, "update this appointment status")

        AppointmentService._apply_status(appointment, target)
        db.commit()
        db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} status -> {appointment.status.value}")
        return appointment

    @staticmethod
    def cancel_appointment(
        db: Session,
        appointment_id: int,
        actor: Optional[User],
        reason: Optional[str] = None,
    ) -> Appointment:
        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        if actor is None or not (
            actor.is_staff
            or appointment.therapist_id == actor.id
            or appointment.user_id == actor.id
        ):
            raise ForbiddenError("Not authorized to cancel this appointment")
        if appointment.status == AppointmentStatus.CANCELLED:
            return appointment
        if not appointment.can_be_cancelled():
            raise ValidationError(
                f"A {appointment.status.value} appointment cannot be cancelled", field="status"
            )

        AppointmentService._apply_status(appointment, AppointmentStatus.CANCELLED)
        if reason:
            appointment.append_note(f"Cancellation reason: {sanitize_text(reason)}")
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def _move(
        db: Session,
        appointment: Appointment,
        new_date: date,
        start_time: str,
        end_time: str,
        therapist_id: Optional[int],
    ) -> None:
        """Re-check the target interval under both the old and new therapist/day locks, then commit."""
        keys = [slot_key(therapist_id, new_date)] if therapist_id is not None else []
        if appointment.therapist_id is not None:
            keys.append(slot_key(appointment.therapist_id, appointment.date))

        with slot_locks.hold_many(keys):
            if appointment.status != AppointmentStatus.PENDING_ASSIGNMENT:
                ConflictChecker.ensure_available(
                    db, therapist_id, new_date, start_time, end_time, exclude_id=appointment.id
                )
            appointment.date = new_date
            appointment.start_time = start_time
            appointment.end_time = end_time
            appointment.therapist_id = therapist_id
            db.commit()

    @staticmethod
    def reschedule_appointment(
        db: Session,
        appointment_id: int,
        data: RescheduleRequest,
        actor: Optional[User],
    ) -> Appointment:
        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        AppointmentService.require_staff_or_therapist(actor, appointment, "reschedule this appointment")

        if not appointment.can_be_rescheduled():
            raise ValidationError(
                f"A {appointment.status.value} appointment cannot be rescheduled", field="status"
            )

        start_time = data.start_time.strip()
        end_time = data.end_time.strip()
        ConflictChecker.validate_interval(start_time, end_time)

        therapist_id = appointment.therapist_id
        if data.therapist_id is not None and data.therapist_id != appointment.therapist_id:
            therapist_id = DirectoryService.get_therapist(db, data.therapist_id).id

        previous = f"{appointment.date} {appointment.start_time}-{appointment.end_time}"
        if data.reason:
            appointment.append_note(f"Rescheduled: {sanitize_text(data.reason)}")
        if data.address:
            appointment.address = data.address
        appointment.status = AppointmentStatus.RESCHEDULED

        try:
            AppointmentService._move(db, appointment, data.date, start_time, end_time, therapist_id)
        except Exception:
            db.rollback()
            raise

        db.refresh(appointment)
        logger.info(
            f"Rescheduled appointment {appointment.id} from {previous} to "
            f"{appointment.date} {appointment.start_time}-{appointment.end_time}"
        )
        return appointment

    @staticmethod
    def assign_therapist(
        db: Session,
        appointment_id: int,
        therapist_id: int,
        actor: Optional[User],
    ) -> Appointment:
        AppointmentService.require_staff(actor, "assign therapists")

        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        if appointment.status != AppointmentStatus.PENDING_ASSIGNMENT:
            raise ValidationError(
                f"Appointment {appointment_id} is {appointment.status.value}, not awaiting assignment",
                field="status"
            )
        therapist = DirectoryService.get_therapist(db, therapist_id)
        ConflictChecker.validate_interval(appointment.start_time, appointment.end_time)

        with slot_locks.hold(slot_key(therapist.id, appointment.date)):
            ConflictChecker.ensure_available(
                db, therapist.id, appointment.date,
                appointment.start_time, appointment.end_time,
                exclude_id=appointment.id
            )
            appointment.therapist_id = therapist.id
            appointment.assigned_by = actor.id
            appointment.assigned_at = clock.utcnow()
            appointment.status = AppointmentStatus.SCHEDULED
            db.commit()

        db.refresh(appointment)
        logger.info(f"Assigned therapist {therapist.id} to appointment {appointment.id}")
        return appointment

    @staticmethod
    def update_appointment(
        db: Session,
        appointment_id: int,
        data: AppointmentUpdate,
        actor: Optional[User],
    ) -> Appointment:
        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        AppointmentService.require_staff_or_therapist(actor, appointment, "update this appointment")

        update_data = data.model_dump(exclude_unset=True)
        status = update_data.pop("status", None)
        payment = update_data.pop("payment", None)
        notes = update_data.pop("notes", None)
        schedule = {key: update_data.pop(key) for key in TIME_FIELDS if key in update_data}

        # Only a real change to date/time/therapist re-runs the conflict check
        schedule = {
            key: value for key, value in schedule.items()
            if value is not None and value != getattr(appointment, key)
        }

        try:
            for key, value in update_data.items():
                setattr(appointment, key, value)
            if notes:
                appointment.append_note(sanitize_text(notes))
            if payment:
                appointment.payment_amount = payment.get("amount", appointment.payment_amount)
                appointment.payment_method = payment.get("method", appointment.payment_method)
                appointment.payment_status = payment.get("status", appointment.payment_status)
            if status is not None:
                target = AppointmentService.parse_status(status)
                if target not in MANUAL_STATUSES:
                    raise ValidationError(f"Invalid status '{status}'", field="status")
                AppointmentService._apply_status(appointment, target)

            if schedule:
                therapist_id = schedule.get("therapist_id", appointment.therapist_id)
                if "therapist_id" in schedule:
                    if appointment.status == AppointmentStatus.PENDING_ASSIGNMENT:
                        raise ValidationError(
                            "Use therapist assignment for appointments awaiting a therapist",
                            field="therapist_id"
                        )
                    DirectoryService.get_therapist(db, therapist_id)
                new_date = schedule.get("date", appointment.date)
                start_time = schedule.get("start_time", appointment.start_time).strip()
                end_time = schedule.get("end_time", appointment.end_time).strip()
                ConflictChecker.validate_interval(start_time, end_time)
                AppointmentService._move(db, appointment, new_date, start_time, end_time, therapist_id)
            else:
                db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment_id: int, actor: Optional[User]) -> Dict[str, str]:
        AppointmentService.require_staff(actor, "delete appointments")
        appointment = AppointmentService.get_appointment_by_id(db, appointment_id)
        db.delete(appointment)
        db.commit()
        return {"message": f"Appointment {appointment_id} deleted successfully"}

    @staticmethod
    def calendar_view(
        db: Session,
        actor: Optional[User],
        view_date: Optional[date] = None,
        therapist_id: Optional[int] = None,
    ) -> Dict[str, Dict[str, Optional[SlotSummary]]]:
        """
        Fixed 14-slot grid per therapist for one day.

        Appointments are bucketed by exact start_time match against the slot
        catalog; off-catalog times are not shown, and for a given slot the
        first appointment found wins.
        """
        if actor is None or not (actor.is_staff or actor.role == UserRole.THERAPIST):
            raise ForbiddenError("Not authorized to view the calendar")
        if actor.role == UserRole.THERAPIST:
            therapist_id = actor.id

        view_date = view_date or clock.today()

        if therapist_id is not None:
            therapists = [DirectoryService.get_therapist(db, therapist_id)]
        else:
            therapists = DirectoryService.get_active_therapists(db)

        grid: Dict[str, Dict[str, Optional[SlotSummary]]] = {}
        labels: Dict[int, str] = {}
        for therapist in therapists:
            label = therapist.full_name
            if label in grid:
                label = f"{label} ({therapist.id})"
            labels[therapist.id] = label
            grid[label] = {slot: None for slot in time_slots.SLOT_LABELS}

        if not labels:
            return grid

        appointments = db.query(Appointment).filter(
            Appointment.date == view_date,
            Appointment.therapist_id.in_(list(labels.keys())),
            Appointment.status != AppointmentStatus.CANCELLED,
        ).order_by(Appointment.id).all()

        for appointment in appointments:
            row = grid[labels[appointment.therapist_id]]
            if appointment.start_time not in row or row[appointment.start_time] is not None:
                continue
            row[appointment.start_time] = SlotSummary(
                appointment_id=appointment.id,
                patient_name=appointment.patient_name,
                service=appointment.service.name if appointment.service else None,
                type=appointment.type.value,
                status=appointment.status.value,
                start_time=appointment.start_time,
                end_time=appointment.end_time,
            )
        return grid

    @staticmethod
    def get_available_slots(db: Session, therapist_id: int, appointment_date: date) -> Dict:
        DirectoryService.get_therapist(db, therapist_id)
        booked = ConflictChecker.active_appointments(db, therapist_id, appointment_date)

        available, taken = [], []
        for slot in time_slots.SLOT_LABELS:
            end = time_slots.slot_end(slot)
            clash = False
            for existing in booked:
                try:
                    if time_slots.overlaps(slot, end, existing.start_time, existing.end_time):
                        clash = True
                        break
                except time_slots.MalformedTimeError:
                    continue
            (taken if clash else available).append(slot)

        return {
            "therapist_id": therapist_id,
            "date": appointment_date,
            "total_slots": len(time_slots.SLOT_LABELS),
            "available_slots": available,
            "booked_slots": taken,
        }
