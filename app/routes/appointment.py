from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from app.config.database import get_db
from app.models.user import User
from app.schemas.appointment import (
    AppointmentResponse,
    AppointmentUpdate,
    AssignTherapistRequest,
    AvailabilityResponse,
    CancelRequest,
    PublicAppointmentCreate,
    RescheduleRequest,
    CalendarView,
    StaffAppointmentCreate,
    StatusUpdate,
)
from app.schemas.appointment_request import (
    AppointmentRequestCreate,
    AppointmentRequestResponse,
    RequestConversion,
)
from app.services.appointment_service import AppointmentService
from app.utils.dependencies import get_current_user

router = APIRouter(prefix="/appointments", tags=["Appointments"])

CONFLICT_RESPONSE = {
    409: {
        "description": "Therapist already has an appointment at this time",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": {
                        "code": 409,
                        "message": "Therapist already has an appointment at this time",
                        "type": "ConflictError",
                        "details": {
                            "conflicting_appointment_id": 12,
                            "start_time": "09:15 AM",
                            "end_time": "10:00 AM",
                            "status": "scheduled"
                        }
                    },
                    "data": None
                }
            }
        }
    }
}


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment (staff)",
    responses=CONFLICT_RESPONSE
)
def create_appointment(
    appointment: StaffAppointmentCreate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Book a therapist slot for an existing patient"""
    return AppointmentService.create_appointment(db, appointment, actor)


@router.post(
    "/public",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment from the parent form",
    responses=CONFLICT_RESPONSE
)
def create_public_appointment(
    appointment: PublicAppointmentCreate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """
    Parent-submitted booking. The parent account and patient record are
    found or created; without a therapist the booking waits for assignment.
    """
    return AppointmentService.create_public_appointment(db, appointment, actor)


@router.post(
    "/request",
    response_model=AppointmentRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an appointment request"
)
def submit_request(
    request: AppointmentRequestCreate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.submit_request(db, request, actor)


@router.get("/requests/pending", response_model=List[AppointmentRequestResponse])
def get_pending_requests(
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Requests waiting for reception to assign a slot"""
    return AppointmentService.list_pending_requests(db, actor)


@router.post(
    "/convert/{request_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT_RESPONSE
)
def convert_request(
    request_id: int,
    conversion: RequestConversion,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Turn a pending request into a formal appointment"""
    return AppointmentService.convert_request(db, request_id, conversion, actor)


@router.patch("/requests/{request_id}/cancel", response_model=AppointmentRequestResponse)
def cancel_request(
    request_id: int,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.cancel_request(db, request_id, actor)


@router.get("/calendar", response_model=CalendarView)
def get_calendar(
    view_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    therapist_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Fixed 14-slot grid per therapist for one day"""
    return AppointmentService.calendar_view(db, actor, view_date, therapist_id)


@router.get("/available-slots/{therapist_id}/{appointment_date}", response_model=AvailabilityResponse)
def get_available_slots(therapist_id: int, appointment_date: date, db: Session = Depends(get_db)):
    """Canonical slots still free for a therapist on a date"""
    return AppointmentService.get_available_slots(db, therapist_id, appointment_date)


@router.get("/", response_model=List[AppointmentResponse])
def get_appointments(
    appointment_date: Optional[date] = Query(None, alias="date"),
    therapist_id: Optional[int] = Query(None),
    patient_id: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.list_appointments(
        db, actor, appointment_date, therapist_id, patient_id, status_filter
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Get appointment by ID"""
    return AppointmentService.get_appointment(db, appointment_id, actor)


@router.put("/{appointment_id}", response_model=AppointmentResponse, responses=CONFLICT_RESPONSE)
def update_appointment(
    appointment_id: int,
    appointment: AppointmentUpdate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Update appointment details. Only provided fields will be updated."""
    return AppointmentService.update_appointment(db, appointment_id, appointment, actor)


@router.put("/{appointment_id}/reschedule", response_model=AppointmentResponse, responses=CONFLICT_RESPONSE)
def reschedule_appointment(
    appointment_id: int,
    reschedule: RescheduleRequest,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.reschedule_appointment(db, appointment_id, reschedule, actor)


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    update: StatusUpdate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.update_status(db, appointment_id, update.status, actor)


@router.put("/{appointment_id}/assign-therapist", response_model=AppointmentResponse, responses=CONFLICT_RESPONSE)
def assign_therapist(
    appointment_id: int,
    assignment: AssignTherapistRequest,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.assign_therapist(db, appointment_id, assignment.therapist_id, actor)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    cancel: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    """Cancel an appointment, recording the reason in its notes"""
    return AppointmentService.cancel_appointment(
        db, appointment_id, actor, cancel.reason if cancel else None
    )


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_current_user)
):
    return AppointmentService.delete_appointment(db, appointment_id, actor)
