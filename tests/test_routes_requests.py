"""Tests for appointment requests and their conversion into appointments."""

import pytest

from app.models.appointment_request import AppointmentRequest, RequestStatus
from app.models.user import User, UserRole

BASE = "/api/v1/appointments"


@pytest.fixture
def request_form():
    return {
        "mother_name": "Priya Verma",
        "father_name": "Sunil Verma",
        "child_name": "Aarav Verma",
        "phone": "+91 79937 24192",
        "email": "sunil@example.com",
        "child_age": 5,
        "service_type": "Speech Therapy",
        "preferred_date": "2024-01-10",
        "preferred_time": "09:15 AM",
        "payment_method": "cash",
        "notes": "Referred by school",
    }


@pytest.fixture
def submitted(client, seed, request_form, as_user):
    response = client.post(f"{BASE}/request", json=request_form, headers=as_user(seed.parent))
    assert response.status_code == 201
    return response.json()


class TestSubmitRequest:
    def test_submit_stores_pending_request(self, submitted, seed):
        assert submitted["status"] == "pending"
        assert submitted["phone"] == "7993724192"
        assert submitted["created_by"] == seed.parent
        assert submitted["appointment_id"] is None

    def test_anonymous_cannot_submit(self, client, request_form):
        assert client.post(f"{BASE}/request", json=request_form).status_code == 403

    def test_unknown_service_type_is_rejected(self, client, seed, request_form, as_user):
        request_form["service_type"] = "Music"
        response = client.post(f"{BASE}/request", json=request_form, headers=as_user(seed.parent))
        assert response.status_code == 422

    def test_pending_list_is_staff_only(self, client, seed, submitted, as_user):
        listed = client.get(f"{BASE}/requests/pending", headers=as_user(seed.receptionist))
        assert [r["id"] for r in listed.json()] == [submitted["id"]]

        assert client.get(f"{BASE}/requests/pending", headers=as_user(seed.parent)).status_code == 403


class TestConvertRequest:
    """Turning a request into a scheduled appointment."""

    def test_convert_links_both_records(self, client, db, seed, submitted, as_user):
        response = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={"therapist_id": seed.therapist, "service_id": seed.service},
            headers=as_user(seed.receptionist),
        )

        assert response.status_code == 201
        appointment = response.json()
        assert appointment["channel"] == "converted"
        assert appointment["status"] == "scheduled"
        assert appointment["request_id"] == submitted["id"]
        assert appointment["start_time"] == "09:15 AM"
        assert appointment["end_time"] == "10:00 AM"
        assert appointment["date"] == "2024-01-10"
        assert appointment["user_id"] == seed.parent
        assert appointment["payment"]["method"] == "cash"
        assert appointment["notes"] == "Referred by school"

        db.expire_all()
        request = db.get(AppointmentRequest, submitted["id"])
        assert request.status == RequestStatus.CONVERTED
        assert request.appointment_id == appointment["id"]

        pending = client.get(f"{BASE}/requests/pending", headers=as_user(seed.admin)).json()
        assert pending == []

    def test_convert_with_explicit_slot(self, client, seed, submitted, as_user):
        response = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={
                "therapist_id": seed.therapist,
                "service_id": seed.service,
                "date": "2024-01-12",
                "start_time": "04:00 PM",
                "end_time": "04:45 PM",
                "total_sessions": 8,
            },
            headers=as_user(seed.admin),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["date"] == "2024-01-12"
        assert data["start_time"] == "04:00 PM"
        assert data["total_sessions"] == 8

    def test_convert_into_busy_slot_keeps_request_pending(
        self, client, db, seed, submitted, make_appointment, as_user
    ):
        make_appointment("09:15 AM", "10:00 AM")

        response = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={"therapist_id": seed.therapist, "service_id": seed.service},
            headers=as_user(seed.admin),
        )

        assert response.status_code == 409
        db.expire_all()
        assert db.get(AppointmentRequest, submitted["id"]).status == RequestStatus.PENDING

    def test_request_converts_only_once(self, client, seed, submitted, as_user):
        payload = {"therapist_id": seed.therapist, "service_id": seed.service}
        assert client.post(
            f"{BASE}/convert/{submitted['id']}", json=payload, headers=as_user(seed.admin)
        ).status_code == 201

        again = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={**payload, "start_time": "01:00 PM", "end_time": "01:45 PM"},
            headers=as_user(seed.admin),
        )
        assert again.status_code == 400

    def test_parent_cannot_convert(self, client, seed, submitted, as_user):
        response = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={"therapist_id": seed.therapist, "service_id": seed.service},
            headers=as_user(seed.parent),
        )
        assert response.status_code == 403

    def test_missing_request(self, client, seed, as_user):
        response = client.post(
            f"{BASE}/convert/404",
            json={"therapist_id": seed.therapist, "service_id": seed.service},
            headers=as_user(seed.admin),
        )
        assert response.status_code == 404


class TestCancelRequest:
    def test_creator_can_cancel(self, client, seed, submitted, as_user):
        response = client.patch(f"{BASE}/requests/{submitted['id']}/cancel", headers=as_user(seed.parent))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancelled_request_cannot_be_converted(self, client, seed, submitted, as_user):
        client.patch(f"{BASE}/requests/{submitted['id']}/cancel", headers=as_user(seed.admin))

        response = client.post(
            f"{BASE}/convert/{submitted['id']}",
            json={"therapist_id": seed.therapist, "service_id": seed.service},
            headers=as_user(seed.admin),
        )
        assert response.status_code == 400

    def test_other_parent_cannot_cancel(self, client, db, seed, submitted, as_user):
        stranger = User(first_name="Other", last_name="Parent", email="other@example.com", role=UserRole.PARENT)
        db.add(stranger)
        db.commit()

        response = client.patch(f"{BASE}/requests/{submitted['id']}/cancel", headers=as_user(stranger.id))
        assert response.status_code == 403
