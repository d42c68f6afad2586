from datetime import timedelta
from typing import Dict

import pytest
from fastapi import HTTPException

from carebook.application.services.appointments_service import AppointmentsService
from carebook.application.services.patients_service import PatientsService, bmi_category, body_mass_index
from carebook.application.ports.patient_repo import MedicationDto, PatientProfileDto

from fakes import NOW, FakeApptRepo, FakeSlotsRepo, clock


class FakePatientsRepo:
    def __init__(self):
        self.profiles = {1: PatientProfileDto(id=1, user_id="pat-user", first_name="Asha", last_name="K"),
                         2: PatientProfileDto(id=2, user_id="pat-user-2", first_name="Ravi", last_name="M")}
        self.medications: Dict[int, MedicationDto] = {}
        self.doctor_links = {(1, 1)}
        self._id = 1

    def get(self, patient_id):
        return self.profiles.get(patient_id)

    def get_by_user(self, user_id):
        return next((p for p in self.profiles.values() if p.user_id == user_id), None)

    def save(self, profile):
        self.profiles[profile.id] = profile
        return profile

    def get_medication(self, patient_id, medication_id):
        med = self.medications.get(medication_id)
        return med if med and med.patient_id == patient_id else None

    def add_medication(self, medication):
        medication.id = self._id
        self._id += 1
        self.medications[medication.id] = medication
        return medication

    def save_medication(self, medication):
        self.medications[medication.id] = medication
        return medication

    def delete_medication(self, medication_id):
        self.medications.pop(medication_id, None)

    def doctor_has_patient(self, doctor_id, patient_id):
        return (doctor_id, patient_id) in self.doctor_links


def make_service():
    repo = FakePatientsRepo()
    return PatientsService(repo=repo, appointments=FakeApptRepo(), clock=clock), repo


def test_update_blood_type_and_emergency_contact():
    svc, _ = make_service()
    svc.update_mine("pat-user", emergency_contact={"name": "Ravi", "phone": "999"})
    out = svc.update_mine("pat-user", blood_type="O+", emergency_contact={"relationship": "brother"})
    assert out.blood_type == "O+"
    assert out.emergency_contact == {"name": "Ravi", "phone": "999", "relationship": "brother"}


def test_invalid_blood_type():
    svc, _ = make_service()
    with pytest.raises(HTTPException):
        svc.update_mine("pat-user", blood_type="C+")


def test_vital_signs_stamp_update_time():
    svc, _ = make_service()
    out = svc.update_vital_signs("pat-user", heart_rate=72, weight_kg=None)
    assert out.vital_signs.heart_rate == 72
    assert out.vital_signs.updated_at == NOW


def test_negative_vitals_rejected():
    svc, _ = make_service()
    with pytest.raises(HTTPException):
        svc.update_vital_signs("pat-user", heart_rate=-1)


def test_allergy_severity_validated():
    svc, _ = make_service()
    out = svc.add_allergy("pat-user", "Peanuts", severity="severe")
    assert out.allergies[0]["allergen"] == "Peanuts"
    with pytest.raises(HTTPException):
        svc.add_allergy("pat-user", "Dust", severity="extreme")


def test_doctor_without_appointment_is_403():
    svc, _ = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.get_for_doctor("doc-user", 2)
    assert exc.value.status_code == 403
    assert svc.get_for_doctor("doc-user", 1).id == 1


def test_health_overview_maps_form_fields():
    svc, _ = make_service()
    out = svc.update_health_overview("doc-user", 1, {"systolic": 120, "diastolic": 80, "weight": 61.5, "unknown": 3})
    vitals = out.vital_signs
    assert (vitals.blood_pressure_systolic, vitals.blood_pressure_diastolic, vitals.weight_kg) == (120, 80, 61.5)


def test_doctor_adds_medication_with_compacted_schedule():
    svc, repo = make_service()
    med = svc.add_medication_for("doc-user", 1, {
        "name": "Metformin",
        "frequency": "2",
        "dosage": "500mg",
        "schedule": [
            {"time": "08:00", "mealRelation": "post-breakfast", "quantity": 1},
            {},
            {"time": "21:00", "quantity": "1"},
        ],
    })
    assert med.frequency == 2
    assert med.created_by_doctor_id == 1
    assert med.dosage == "500mg"
    assert [row["time"] for row in med.schedule] == ["08:00"]
    assert med.schedule[0]["meal_relation"] == "post-breakfast"


def test_medication_frequency_out_of_range():
    svc, _ = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.add_my_medication("pat-user", {"name": "Vitamin D", "frequency": 9})
    assert exc.value.status_code == 400


def test_update_and_delete_medication():
    svc, repo = make_service()
    med = svc.add_my_medication("pat-user", {"name": "Vitamin D", "frequency": 1})
    out = svc.update_medication_for("doc-user", 1, med.id, {"frequency": 3, "notes": "with milk"})
    assert out.frequency == 3
    assert out.notes == "with milk"
    svc.delete_medication_for("doc-user", 1, med.id)
    assert repo.medications == {}
    with pytest.raises(HTTPException) as exc:
        svc.delete_medication_for("doc-user", 1, med.id)
    assert exc.value.status_code == 404


def test_medical_history_replaces_only_given_sections():
    svc, repo = make_service()
    svc.update_medical_history("pat-user", {
        "current_conditions": [{"condition": "Asthma", "status": "managed"}],
        "surgeries": [{"procedure": "Appendectomy"}],
    })
    out = svc.update_medical_history("pat-user", {
        "current_conditions": [{"condition": "Hypertension", "status": "active"}],
        "surgeries": None,
    })
    assert out.medical_history["current_conditions"] == [{"condition": "Hypertension", "status": "active"}]
    assert out.medical_history["surgeries"] == [{"procedure": "Appendectomy"}]
    assert repo.profiles[1].medical_history is out.medical_history


def test_medical_history_needs_a_known_section():
    svc, _ = make_service()
    for sections in ({}, {"surgeries": None}, {"vaccinations": [{"name": "BCG"}]}):
        with pytest.raises(HTTPException) as exc:
            svc.update_medical_history("pat-user", sections)
        assert exc.value.detail == "No valid medical history fields to update"


def test_medical_history_entries_validated():
    svc, repo = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.update_medical_history("pat-user", {"hospitalizations": [{"hospital": "City"}]})
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException):
        svc.update_medical_history("pat-user", {"current_conditions": [{"condition": "Asthma", "status": "cured"}]})
    assert repo.profiles[1].medical_history == {}


def test_bmi_and_category():
    assert body_mass_index(170, 66) == 22.8
    assert body_mass_index(None, 66) is None
    assert bmi_category(None) is None
    assert [bmi_category(v) for v in (18.4, 18.5, 25, 30)] == ["Underweight", "Normal weight", "Overweight", "Obese"]


def test_dashboard_summarizes_profile_and_appointments():
    svc, repo = make_service()
    slots = FakeSlotsRepo()
    booking = AppointmentsService(repo=svc.appointments, slots=slots, clock=clock)
    booking.book_slot("pat-user", slots.add(1, NOW + timedelta(days=1)).id, "Checkup")

    svc.update_vital_signs("pat-user", height_cm=170, weight_kg=66)
    svc.update_mine("pat-user", emergency_contact={"name": "Ravi", "phone": "999"})
    repo.profiles[1].medications = [
        MedicationDto(id=1, patient_id=1, name="Metformin"),
        MedicationDto(id=2, patient_id=1, name="Amoxicillin", is_active=False),
    ]

    stats = svc.dashboard("pat-user")
    # basic info, emergency contact, vitals and medications
    assert stats["profileCompletion"] == 60
    assert stats["activeMedicationsCount"] == 1
    assert stats["allergiesCount"] == 0
    assert stats["hasEmergencyContact"] is True
    assert stats["lastVitalSignsUpdate"] == NOW
    assert stats["bmi"] == 22.8
    assert stats["bmiCategory"] == "Normal weight"
    assert stats["pendingAppointments"] == 1
    assert stats["upcomingAppointments"] == 0
