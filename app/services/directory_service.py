# app/services/directory_service.py

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.patient import Patient
from app.models.service import Service
from app.models.user import User, UserRole
from app.utils.exceptions import NotFoundError
from app.utils.validators import normalize_phone, split_name

logger = logging.getLogger("scheduling")


class DirectoryService:
    """Lookups and find-or-create for the people and services a booking references."""

    @staticmethod
    def get_therapist(db: Session, therapist_id: int) -> User:
        therapist = db.query(User).filter(User.id == therapist_id).first()
        if not therapist or therapist.role != UserRole.THERAPIST:
            raise NotFoundError(f"Therapist with ID {therapist_id} not found")
        return therapist

    @staticmethod
    def get_active_therapists(db: Session) -> List[User]:
        return db.query(User).filter(
            User.role == UserRole.THERAPIST,
            User.is_active.is_(True)
        ).order_by(User.id).all()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Service:
        service = db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise NotFoundError(f"Service with ID {service_id} not found")
        return service

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Patient:
        patient = db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            raise NotFoundError(f"Patient with ID {patient_id} not found")
        return patient

    @staticmethod
    def resolve_guardian(db: Session, name: str, phone: str, email: Optional[str] = None) -> User:
        """Find the parent account by email first, then phone; create it if neither matches."""
        canonical = normalize_phone(phone)
        guardian = None

        if email:
            guardian = db.query(User).filter(func.lower(User.email) == email.lower()).first()
        if not guardian and canonical:
            guardian = db.query(User).filter(User.phone == canonical).first()

        if guardian:
            return guardian

        first_name, last_name = split_name(name)
        guardian = User(
            first_name=first_name,
            last_name=last_name or "Parent",
            email=email,
            phone=canonical,
            role=UserRole.PARENT,
        )
        db.add(guardian)
        db.flush()
        logger.info(f"Created parent user {guardian.id} for {canonical}")
        return guardian

    @staticmethod
    def resolve_patient(
        db: Session,
        guardian: User,
        child_name: str,
        date_of_birth: Optional[date] = None,
        gender: Optional[str] = None,
    ) -> Patient:
        first_name, last_name = split_name(child_name)
        patient = db.query(Patient).filter(
            Patient.parent_id == guardian.id,
            func.lower(Patient.first_name) == first_name.lower()
        ).first()
        if patient:
            return patient

        patient = Patient(
            parent_id=guardian.id,
            first_name=first_name,
            last_name=last_name or guardian.last_name,
            date_of_birth=date_of_birth,
            gender=gender,
            parent_name=guardian.full_name,
            parent_phone=guardian.phone,
        )
        db.add(patient)
        db.flush()
        logger.info(f"Created patient {patient.id} under parent {guardian.id}")
        return patient
