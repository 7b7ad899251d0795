import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REMINDERS_ENABLED"] = "false"
os.environ["LOCK_BACKEND"] = "local"
os.environ["TIMEZONE"] = "Asia/Kolkata"

from datetime import date, datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.config.database import Base, SessionLocal, engine
from app.main import app
from app.models.appointment import Appointment, AppointmentStatus
from app.models.patient import Patient
from app.models.service import Service
from app.models.user import User, UserRole
from app.utils.clock import FixedClock

BOOKING_DATE = date(2024, 1, 10)

# Stand-in for "the seeded therapist" so None can mean unassigned
SEEDED = object()


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory database."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def seed(db):
    admin = User(first_name="Anita", last_name="Rao", email="admin@clinic.test", role=UserRole.ADMIN)
    receptionist = User(first_name="Ravi", last_name="K", email="desk@clinic.test", role=UserRole.RECEPTIONIST)
    therapist = User(first_name="Meera", last_name="Shah", email="meera@clinic.test", role=UserRole.THERAPIST)
    other_therapist = User(first_name="Arjun", last_name="Iyer", email="arjun@clinic.test", role=UserRole.THERAPIST)
    parent = User(first_name="Sunil", last_name="Verma", email="sunil@example.com",
                  phone="7993724192", role=UserRole.PARENT)
    db.add_all([admin, receptionist, therapist, other_therapist, parent])
    db.flush()

    patient = Patient(parent_id=parent.id, first_name="Aarav", last_name="Verma",
                      parent_name="Sunil Verma", parent_phone="7993724192")
    service = Service(name="Speech Therapy", category="Speech Therapy", duration=45, price=800)
    db.add_all([patient, service])
    db.commit()

    return SimpleNamespace(
        admin=admin.id,
        receptionist=receptionist.id,
        therapist=therapist.id,
        other_therapist=other_therapist.id,
        parent=parent.id,
        patient=patient.id,
        service=service.id,
    )


@pytest.fixture
def make_appointment(db, seed):
    """Insert an appointment row directly, bypassing the booking checks."""

    def _make(start_time="09:15 AM", end_time="10:00 AM", status=AppointmentStatus.SCHEDULED,
              therapist_id=SEEDED, appointment_date=BOOKING_DATE, phone="7993724192", **extra):
        appointment = Appointment(
            patient_id=seed.patient,
            user_id=seed.parent,
            therapist_id=seed.therapist if therapist_id is SEEDED else therapist_id,
            service_id=seed.service,
            patient_name="Aarav Verma",
            phone=phone,
            date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            **extra
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def frozen_clock():
    # Noon on the day before BOOKING_DATE
    return FixedClock(datetime(2024, 1, 9, 12, 0), timezone="Asia/Kolkata")


@pytest.fixture
def as_user():
    """Headers identifying the acting user."""

    def _headers(user_id):
        return {"X-User-Id": str(user_id)}

    return _headers
