import json
import threading

import httpx
import pytest

from carebook.client import (
    ActionInProgress,
    ActionTracker,
    ApiClient,
    ApiError,
    AppointmentsAPI,
    AuthAPI,
    AuthSession,
    CareProviderAPI,
    DoctorAPI,
    DoctorPatientsAPI,
    PatientAPI,
    SessionStore,
    SlotsAPI,
)

USER = {
    "id": "user-1",
    "firstName": "Asha",
    "lastName": "K",
    "email": "asha@example.com",
    "userType": "patient",
}


def appointment(**overrides):
    data = {
        "id": 7,
        "doctorId": 1,
        "patientId": 2,
        "appointmentDate": "2030-01-02T10:00:00",
        "reasonForVisit": "Back pain",
        "status": "pending",
    }
    data.update(overrides)
    return data


def envelope(data, status=200, message=None):
    return httpx.Response(status, json={"success": status < 400, "message": message, "data": data})


def make_client(handler, session=None):
    return ApiClient("http://api.test", session=session, transport=httpx.MockTransport(handler))


def test_login_stores_session_and_sends_bearer(tmp_path):
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/api/auth/login":
            return envelope({"token": "acc-1", "refreshToken": "ref-1", "user": USER})
        return envelope(USER)

    store = SessionStore(tmp_path / "session.json")
    session = AuthSession(store)
    auth = AuthAPI(make_client(handler, session))

    auth.login("asha@example.com", "secret-pass")
    assert session.is_authenticated
    assert session.role == "patient"
    assert json.loads((tmp_path / "session.json").read_text())["refreshToken"] == "ref-1"

    me = auth.me()
    assert me.email == "asha@example.com"
    assert seen[-1].headers["Authorization"] == "Bearer acc-1"
    assert "Authorization" not in seen[0].headers


def test_error_envelope_becomes_api_error():
    def handler(request):
        return httpx.Response(409, json={"success": False, "message": "Slot taken", "data": None, "error": "Slot taken"})

    api = AppointmentsAPI(make_client(handler))
    with pytest.raises(ApiError) as exc:
        api.book_slot(3, "Back pain")
    assert exc.value.status_code == 409
    assert exc.value.message == "Slot taken"
    assert str(exc.value) == "409: Slot taken"


def test_network_error_has_no_status():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ApiError) as exc:
        AppointmentsAPI(make_client(handler)).get_appointment(1)
    assert exc.value.status_code is None
    assert exc.value.message.startswith("Network error")


def test_book_slot_sends_camel_case_body():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return envelope(appointment(), status=201)

    out = AppointmentsAPI(make_client(handler)).book_slot(3, "Back pain", symptoms=["ache"])
    assert bodies == [{"slotId": 3, "reasonForVisit": "Back pain", "symptoms": ["ache"]}]
    assert out.status == "pending"
    assert out.reason_for_visit == "Back pain"


def test_status_helpers_and_decision():
    calls = []

    def handler(request):
        body = json.loads(request.content)
        calls.append((request.method, request.url.path, body))
        return envelope(appointment(status=body.get("status", "rescheduled")))

    api = AppointmentsAPI(make_client(handler))
    api.approve_appointment(7)
    api.reject_appointment(7, reason="Unavailable")
    api.decide_reschedule(7, "approved")

    assert calls[0] == ("PUT", "/api/appointments/7/status", {"status": "confirmed"})
    assert calls[1] == ("PUT", "/api/appointments/7/status", {"status": "rejected", "reason": "Unavailable"})
    assert calls[2] == ("PUT", "/api/appointments/7/reschedule/decision", {"decision": "approved", "reason": None})


def test_doctor_appointments_with_pagination_drop_empty_params():
    seen = []

    def handler(request):
        seen.append(request.url)
        return envelope({
            "appointments": [appointment()],
            "pagination": {"currentPage": 1, "totalPages": 1, "total": 1, "hasNextPage": False, "hasPrevPage": False},
        })

    appts, pagination = AppointmentsAPI(make_client(handler)).get_doctor_appointments(status="pending")
    assert [a.id for a in appts] == [7]
    assert pagination.total == 1
    assert dict(seen[0].params) == {"status": "pending", "page": "1", "limit": "10"}


def test_get_buckets_rejects_unknown_role():
    api = AppointmentsAPI(make_client(lambda request: envelope({})))
    with pytest.raises(ValueError):
        api.get_buckets("careprovider")


def test_slots_and_doctor_patients_paths():
    paths = []

    def handler(request):
        paths.append((request.method, request.url.path))
        if request.url.path.endswith("/all"):
            return envelope({"deletedCount": 4})
        return envelope(None)

    client = make_client(handler)
    assert SlotsAPI(client).delete_all_slots() == 4
    DoctorPatientsAPI(client).delete_medication(2, 9)
    assert paths == [
        ("DELETE", "/api/appointments/slots/all"),
        ("DELETE", "/api/patients/profile/2/medication/9"),
    ]


def test_education_calls_send_camel_case_bodies():
    seen = []

    def handler(request):
        body = json.loads(request.content) if request.content else None
        seen.append((request.method, request.url.path, body))
        if request.method == "DELETE":
            return envelope(None)
        return envelope({"id": 3, "doctorId": 1, "institution": "AIIMS", "degree": "MD", "graduationYear": 2012})

    api = DoctorAPI(make_client(handler))
    entry = api.add_education({"institution": "AIIMS", "degree": "MBBS", "graduation_year": 2012})
    assert entry.graduation_year == 2012
    api.update_education(3, {"degree": "MD"})
    api.delete_education(3)
    assert seen == [
        ("POST", "/api/doctors/profile/education", {"institution": "AIIMS", "degree": "MBBS", "graduationYear": 2012}),
        ("PUT", "/api/doctors/profile/education/3", {"degree": "MD"}),
        ("DELETE", "/api/doctors/profile/education/3", None),
    ]


def test_dashboard_stats_for_patient_and_care_provider():
    def handler(request):
        if request.url.path == "/api/patients/stats/dashboard":
            return envelope({"profileCompletion": 35, "activeMedicationsCount": 1, "allergiesCount": 0,
                             "hasEmergencyContact": False, "bmi": 22.9, "bmiCategory": "Normal weight"})
        return envelope({"profileCompletion": 50, "isVerified": True, "status": "approved", "servicesCount": 2})

    client = make_client(handler)
    patient = PatientAPI(client).get_dashboard_stats()
    assert patient.bmi_category == "Normal weight"
    assert patient.upcoming_appointments == 0
    provider = CareProviderAPI(client).get_dashboard_stats()
    assert provider.is_verified
    assert provider.services_count == 2


def test_update_medical_history_sends_only_given_sections():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return envelope({"id": 1, "userId": "pat-user"})

    profile = PatientAPI(make_client(handler)).update_medical_history(
        {"surgeries": [{"procedure": "Appendectomy", "hospital": "City Hospital"}]}
    )
    assert profile.medical_history.surgeries == []
    assert seen == [{"surgeries": [{"procedure": "Appendectomy", "hospital": "City Hospital"}]}]


def test_logout_clears_session_even_when_server_fails(tmp_path):
    store = SessionStore(tmp_path / "s.json")
    session = AuthSession(store)
    session.login("acc", None, "ref")

    def handler(request):
        return httpx.Response(500, json={"success": False, "message": "boom", "data": None})

    with pytest.raises(ApiError):
        AuthAPI(make_client(handler, session)).logout()
    assert not session.is_authenticated
    assert not (tmp_path / "s.json").exists()


def test_rehydrate_ignores_corrupt_file(tmp_path):
    path = tmp_path / "s.json"
    path.write_text("{not json")
    assert AuthSession(SessionStore(path)).rehydrate() is False

    path.write_text(json.dumps({"token": "t", "user": {"id": 5}}))
    assert AuthSession(SessionStore(path)).rehydrate() is False


def test_rehydrate_round_trip(tmp_path):
    store = SessionStore(tmp_path / "nested" / "s.json")

    def handler(request):
        return envelope({"token": "acc", "refreshToken": "ref", "user": USER})

    AuthAPI(make_client(handler, AuthSession(store))).login("asha@example.com", "secret-pass")

    restored = AuthSession(store)
    assert restored.rehydrate() is True
    assert restored.token == "acc"
    assert restored.user.email == "asha@example.com"


def test_refresh_replaces_token_or_signs_out(tmp_path):
    store = SessionStore(tmp_path / "s.json")
    session = AuthSession(store)
    session.login("old", None, "ref")
    responses = [envelope({"token": "new"}), httpx.Response(401, json={"success": False, "message": "expired"})]

    auth = AuthAPI(make_client(lambda request: responses.pop(0), session))
    assert session.refresh(auth) == "new"
    assert json.loads((tmp_path / "s.json").read_text())["token"] == "new"

    with pytest.raises(ApiError):
        session.refresh(auth)
    assert not session.is_authenticated
    with pytest.raises(ApiError):
        session.refresh(auth)


def test_action_tracker_blocks_double_submit():
    tracker = ActionTracker()
    with tracker.track(7, "approving"):
        assert tracker.current(7) == "approving"
        with pytest.raises(ActionInProgress) as exc:
            with tracker.track(7, "rejecting"):
                pass
        assert exc.value.action == "approving"
        with tracker.track(8, "rejecting"):
            assert tracker.is_busy(8)
    assert not tracker.is_busy(7)


def test_action_tracker_clears_after_failure():
    tracker = ActionTracker()

    def fail():
        raise ApiError("boom", 500)

    with pytest.raises(ApiError):
        tracker.run(1, "completing", fail)
    assert tracker.current(1) is None
    assert tracker.run(1, "completing", lambda: "done") == "done"
    with pytest.raises(ValueError):
        tracker.run(1, "archiving", lambda: None)


def test_action_tracker_is_thread_safe():
    tracker = ActionTracker()
    gate = threading.Event()
    results = []

    def worker():
        try:
            with tracker.track(1, "cancelling"):
                gate.wait(1)
                results.append("ran")
        except ActionInProgress:
            results.append("blocked")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(50):
        if results.count("blocked") == 3:
            break
        threading.Event().wait(0.01)
    gate.set()
    for t in threads:
        t.join()
    assert sorted(results) == ["blocked", "blocked", "blocked", "ran"]
