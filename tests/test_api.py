from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from carebook.main import app
from carebook.database import create_db_and_tables, get_session
from carebook.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from carebook.routers.deps import get_rate_limiter


@pytest.fixture
def client():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(engine)
    limiter = InMemoryRateLimiter()

    def session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = session_override
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register(client, email, user_type, first_name="Asha"):
    res = client.post("/api/auth/register", json={
        "firstName": first_name,
        "lastName": "K",
        "email": email,
        "password": "secret-pass",
        "userType": user_type,
    })
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    return {"Authorization": f"Bearer {data['token']}"}, data


def future(days=2):
    return (datetime.utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat() + "Z"


def setup_booking(client):
    doctor, _ = register(client, "doc@example.com", "doctor", "Meera")
    patient, _ = register(client, "pat@example.com", "patient")
    doctor_id = client.get("/api/doctors/profile/me", headers=doctor).json()["data"]["id"]
    slot = client.post("/api/appointments/slots", json={"dateTime": future()}, headers=doctor).json()["data"]
    res = client.post("/api/appointments", json={"slotId": slot["id"], "reasonForVisit": "Back pain"}, headers=patient)
    assert res.status_code == 201, res.text
    return doctor, patient, doctor_id, slot, res.json()["data"]


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] in ("healthy", "degraded")
    assert "version" in body


def test_missing_token_is_401_envelope(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json() == {
        "success": False,
        "message": "Authentication required",
        "data": None,
        "error": "Authentication required",
    }


def test_register_login_and_me(client):
    headers, data = register(client, "Asha@Example.com", "patient")
    assert data["user"]["email"] == "asha@example.com"
    assert data["user"]["userType"] == "patient"
    assert data["refreshToken"]

    login = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret-pass"})
    assert login.status_code == 200
    me = client.get("/api/auth/me", headers=headers).json()
    assert me["success"] is True
    assert me["data"]["fullName"] == "Asha K"


def test_validation_errors_use_envelope(client):
    res = client.post("/api/auth/register", json={
        "firstName": "A", "lastName": "B", "email": "a@b.com", "password": "short", "userType": "patient",
    })
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert "password" in res.json()["message"]


def test_duplicate_registration(client):
    register(client, "dup@example.com", "patient")
    res = client.post("/api/auth/register", json={
        "firstName": "A", "lastName": "B", "email": "dup@example.com", "password": "secret-pass", "userType": "patient",
    })
    assert res.status_code == 400


def test_refresh_token_cannot_call_api(client):
    _, data = register(client, "r@example.com", "patient")
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['refreshToken']}"})
    assert res.status_code == 401

    refreshed = client.post("/api/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert refreshed.status_code == 200
    new_token = refreshed.json()["data"]["token"]
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"}).status_code == 200


def login_code(client, email, password):
    return client.post("/api/auth/login", json={"email": email, "password": password}).status_code


def test_login_attempts_are_rate_limited(client):
    codes = [login_code(client, "nobody@example.com", "wrong-pass") for _ in range(6)]
    assert codes == [401, 401, 401, 401, 401, 429]


def test_registration_does_not_spend_login_budget(client):
    register(client, "x@example.com", "patient")
    codes = [login_code(client, "x@example.com", "secret-pass") for _ in range(6)]
    assert codes == [200] * 6


def test_successful_login_clears_rate_limit(client):
    register(client, "y@example.com", "patient")
    assert [login_code(client, "y@example.com", "wrong-pass") for _ in range(4)] == [401] * 4
    assert login_code(client, "y@example.com", "secret-pass") == 200
    assert [login_code(client, "y@example.com", "wrong-pass") for _ in range(4)] == [401] * 4
    assert login_code(client, "y@example.com", "secret-pass") == 200


def test_role_guard(client):
    patient, _ = register(client, "p@example.com", "patient")
    res = client.post("/api/appointments/slots", json={"dateTime": future()}, headers=patient)
    assert res.status_code == 403


def test_booking_flow_and_buckets(client):
    doctor, patient, doctor_id, slot, appt = setup_booking(client)
    assert appt["status"] == "pending"
    assert appt["slotId"] == slot["id"]

    public = client.get(f"/api/appointments/slots/doctor/{doctor_id}").json()["data"]["slots"]
    assert public == []

    buckets = client.get("/api/appointments/patient/my/buckets", headers=patient).json()["data"]
    assert buckets["counts"]["pending"] == 1

    approved = client.put(f"/api/appointments/{appt['id']}/status", json={"status": "confirmed"}, headers=doctor)
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "confirmed"

    buckets = client.get("/api/appointments/doctor/my/buckets", headers=doctor).json()["data"]
    assert buckets["counts"] == {"pending": 0, "upcoming": 1, "completed": 0, "cancelled": 0}
    assert [a["id"] for a in buckets["upcoming"]] == [appt["id"]]

    listing = client.get("/api/appointments/doctor/my", headers=doctor).json()["data"]
    assert listing["pagination"]["total"] == 1


def test_appointment_hidden_from_other_patients(client):
    _, patient, _, _, appt = setup_booking(client)
    assert client.get(f"/api/appointments/{appt['id']}", headers=patient).status_code == 200
    stranger, _ = register(client, "s@example.com", "patient")
    res = client.get(f"/api/appointments/{appt['id']}", headers=stranger)
    assert res.status_code == 404


def test_reschedule_proposal_over_http(client):
    doctor, patient, _, _, appt = setup_booking(client)
    new_time = future(days=5)

    proposed = client.post(f"/api/appointments/{appt['id']}/reschedule/propose",
                           json={"proposedDateTime": new_time, "reason": "Travel"}, headers=patient)
    assert proposed.status_code == 200, proposed.text
    assert proposed.json()["data"]["pendingReschedule"]["active"] is True

    own = client.put(f"/api/appointments/{appt['id']}/reschedule/decision", json={"decision": "approved"}, headers=patient)
    assert own.status_code == 403

    decided = client.put(f"/api/appointments/{appt['id']}/reschedule/decision", json={"decision": "approved"}, headers=doctor)
    assert decided.status_code == 200
    data = decided.json()["data"]
    assert data["status"] == "rescheduled"
    assert data["pendingReschedule"]["active"] is False
    assert data["reasonForVisit"] == "Back pain"
    assert data["appointmentDate"].startswith(new_time[:16])


def test_unbooked_slots_are_public(client):
    doctor, _ = register(client, "d2@example.com", "doctor")
    doctor_id = client.get("/api/doctors/profile/me", headers=doctor).json()["data"]["id"]
    client.post("/api/appointments/slots", json={"dateTime": future(3), "duration": 45}, headers=doctor)
    slots = client.get(f"/api/appointments/slots/doctor/{doctor_id}").json()["data"]["slots"]
    assert len(slots) == 1
    assert slots[0]["duration"] == 45

    deleted = client.delete("/api/appointments/slots/all", headers=doctor).json()["data"]
    assert deleted == {"deletedCount": 1}


def test_facility_listing_and_review(client):
    owner, _ = register(client, "o@example.com", "careprovider")
    created = client.post("/api/healthcare-facilities", json={"name": "City Lab", "type": "lab", "city": "Pune"}, headers=owner)
    assert created.status_code == 201, created.text
    facility_id = created.json()["data"]["id"]

    listing = client.get("/api/healthcare-facilities", params={"city": "Pune"}).json()["data"]
    assert listing["total"] == 1

    reviewed = client.post(f"/api/healthcare-facilities/{facility_id}/reviews", json={"rating": 4}, headers=owner)
    assert reviewed.status_code == 201


def test_responses_carry_request_id_and_security_headers(client):
    res = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert res.headers["X-Request-ID"] == "req-123"
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Process-Time" in res.headers


def test_oversized_body_is_413(client):
    from carebook.core.config import settings

    res = client.post("/api/auth/login", content=b"x" * (settings.MAX_REQUEST_SIZE + 1),
                      headers={"Content-Type": "application/json"})
    assert res.status_code == 413
    assert res.json()["success"] is False


def test_failed_booking_leaves_slot_bookable(client, monkeypatch):
    from carebook.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import (
        SqlAppointmentsRepository,
    )

    doctor, _ = register(client, "d3@example.com", "doctor")
    patient, _ = register(client, "p3@example.com", "patient")
    doctor_id = client.get("/api/doctors/profile/me", headers=doctor).json()["data"]["id"]
    slot = client.post("/api/appointments/slots", json={"dateTime": future()}, headers=doctor).json()["data"]

    def broken_create(self, dto):
        raise RuntimeError("disk full")

    monkeypatch.setattr(SqlAppointmentsRepository, "create", broken_create)
    res = client.post("/api/appointments", json={"slotId": slot["id"], "reasonForVisit": "Back pain"}, headers=patient)
    assert res.status_code == 500

    public = client.get(f"/api/appointments/slots/doctor/{doctor_id}").json()["data"]["slots"]
    assert [s["id"] for s in public] == [slot["id"]]

    monkeypatch.undo()
    res = client.post("/api/appointments", json={"slotId": slot["id"], "reasonForVisit": "Back pain"}, headers=patient)
    assert res.status_code == 201


def test_doctor_education_crud(client):
    doctor, _ = register(client, "doc@example.com", "doctor", "Meera")
    other, _ = register(client, "doc2@example.com", "doctor", "Arun")

    res = client.post("/api/doctors/profile/education", headers=doctor, json={
        "institution": "AIIMS Delhi", "degree": "MBBS", "graduationYear": 2012,
    })
    assert res.status_code == 201, res.text
    entry = res.json()["data"]
    assert entry["graduationYear"] == 2012

    bad = client.post("/api/doctors/profile/education", headers=doctor, json={"institution": "AIIMS", "degree": "BSc"})
    assert bad.status_code == 400

    res = client.put(f"/api/doctors/profile/education/{entry['id']}", headers=doctor, json={"degree": "MD"})
    assert res.json()["data"]["degree"] == "MD"
    assert client.put(f"/api/doctors/profile/education/{entry['id']}", headers=other, json={"degree": "DO"}).status_code == 404

    profile = client.get("/api/doctors/profile/me", headers=doctor).json()["data"]
    assert [e["institution"] for e in profile["education"]] == ["AIIMS Delhi"]

    assert client.delete(f"/api/doctors/profile/education/{entry['id']}", headers=doctor).status_code == 200
    assert client.get("/api/doctors/profile/me", headers=doctor).json()["data"]["education"] == []


def test_patient_medical_history_and_dashboard(client):
    _, patient, _, _, _ = setup_booking(client)

    res = client.put("/api/patients/profile/medical-history", headers=patient, json={
        "currentConditions": [{"condition": "Asthma", "status": "managed", "diagnosedDate": "2020-05-01T00:00:00"}],
    })
    assert res.status_code == 200, res.text
    history = res.json()["data"]["medicalHistory"]
    assert history["currentConditions"][0]["diagnosedDate"] == "2020-05-01T00:00:00"
    assert history["surgeries"] == []

    bad = client.put("/api/patients/profile/medical-history", headers=patient, json={
        "currentConditions": [{"condition": "Asthma", "status": "cured"}],
    })
    assert bad.status_code == 400

    client.put("/api/patients/profile/vital-signs", headers=patient, json={"heightCm": 160, "weightKg": 80})
    stats = client.get("/api/patients/stats/dashboard", headers=patient).json()["data"]
    assert stats["bmi"] == 31.2
    assert stats["bmiCategory"] == "Obese"
    assert stats["pendingAppointments"] == 1
    assert stats["hasEmergencyContact"] is False
    # basic info, vitals and medical history
    assert stats["profileCompletion"] == 50


def test_care_provider_dashboard(client):
    provider, _ = register(client, "care@example.com", "careprovider", "Lata")
    client.put("/api/care-providers/profile/me", headers=provider, json={
        "providerType": "nurse", "services": ["wound care"], "city": "Pune",
    })
    res = client.get("/api/care-providers/stats/dashboard", headers=provider)
    assert res.status_code == 200, res.text
    stats = res.json()["data"]
    assert stats["profileCompletion"] == 50
    assert stats["servicesCount"] == 1
    assert stats["status"] == "pending"
    assert client.get("/api/care-providers/stats/dashboard", headers=register(client, "p@example.com", "patient")[0]).status_code == 403
