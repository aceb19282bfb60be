import pytest


# ============================================================================
# AUTH
# ============================================================================


def test_login_and_me(client, auth_headers):
    r = client.get("/api/me", headers=auth_headers("ST001"))

    assert r.status_code == 200
    me = r.json()
    assert me["user_id"] == "ST001"
    assert me["role"] == "Receptionist"
    assert [p["key"] for p in me["panels"]] == ["dashboard", "patients", "appointments"]
    assert me["default_panel"] == "patients"


def test_login_with_wrong_password(client):
    r = client.post("/api/auth/login", data={"username": "ST001", "password": "nope"})

    assert r.status_code == 401


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/me").status_code == 401
    assert client.get("/api/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_token_subject_is_matched_by_id_only(client, auth_headers):
    gp = auth_headers("C001")

    r = client.post("/api/patients", json={"first_name": "Eve", "last_name": "C001"}, headers=auth_headers("receptionist"))
    assert r.json()["patient_id"] == "P005"

    me = client.get("/api/me", headers=gp).json()
    assert me["user_id"] == "C001"
    assert me["role"] == "GP"

    # the new patient cannot sign in as the clinician either
    me = client.get("/api/me", headers=auth_headers("C001")).json()
    assert me["user_id"] == "C001"


# ============================================================================
# PANEL PERMISSIONS
# ============================================================================


@pytest.mark.parametrize(
    "identifier, path, code",
    [
        ("P001", "/api/patients", 403),
        ("P001", "/api/dashboard/appointments", 403),
        ("C004", "/api/appointments", 403),
        ("C004", "/api/medical-records/P001", 200),
        ("admin", "/api/staff", 200),
        ("admin", "/api/appointments", 403),
        ("receptionist", "/api/staff", 403),
        ("DEV001", "/api/staff", 200),
        ("DEV001", "/api/portal?patient_id=P002", 200),
    ],
)
def test_panel_permissions(client, auth_headers, identifier, path, code):
    assert client.get(path, headers=auth_headers(identifier)).status_code == code


# ============================================================================
# PANELS
# ============================================================================


def test_dashboard(client, auth_headers):
    r = client.get("/api/dashboard/appointments", params={"day": "2025-12-26"}, headers=auth_headers("C001"))

    assert r.status_code == 200
    assert [a["patient_name"] for a in r.json()] == ["John Doe", "Mary Jones"]


def test_patient_crud(client, auth_headers, accounts):
    h = auth_headers("receptionist")

    r = client.post("/api/patients", json={"first_name": "Ann", "last_name": "Lee"}, headers=h)
    assert r.status_code == 201
    assert r.json()["patient_id"] == "P005"

    r = client.put("/api/patients/P005", json={"phone_number": "0117"}, headers=h)
    assert r.json()["phone_number"] == "0117"

    r = client.get("/api/patients", params={"name": "lee"}, headers=h)
    assert [p["patient_id"] for p in r.json()] == ["P005"]

    r = client.delete("/api/patients/P001", headers=h)
    assert r.json() == {
        "ok": True,
        "appointments_removed": 2,
        "prescriptions_removed": 1,
        "medical_record_removed": True,
    }
    assert client.delete("/api/patients/P001", headers=h).status_code == 404


def test_errors_map_to_status_codes(client, auth_headers):
    h = auth_headers("receptionist")

    assert client.post("/api/patients", json={"first_name": "Ann"}, headers=h).status_code == 422
    assert client.put("/api/patients/P999", json={"email": "x@y"}, headers=h).status_code == 404

    r = client.post(
        "/api/appointments",
        json={"patient_id": "P999", "clinician_id": "C001", "appointment_date": "2026-02-01", "appointment_time": "10:00"},
        headers=h,
    )
    assert r.status_code == 422
    assert r.json()["field"] == "patient_id"


def test_appointment_flow(client, auth_headers):
    h = auth_headers("ST001")

    r = client.post(
        "/api/appointments",
        json={
            "patient_id": "P004",
            "clinician_id": "C002",
            "facility_id": "S002",
            "appointment_date": "2026-02-01",
            "appointment_time": "10:00",
        },
        headers=h,
    )
    assert r.status_code == 201
    assert r.json()["status"] == "Scheduled"

    r = client.put("/api/appointments/A005", json={"status": "No Show"}, headers=h)
    assert r.json()["status"] == "No Show"

    r = client.get("/api/appointments", params={"by": "patient_name", "text": "turner"}, headers=h)
    assert [a["appointment_id"] for a in r.json()] == ["A005"]

    assert client.delete("/api/appointments/A005", headers=h).json() == {"ok": True}
    assert client.delete("/api/appointments/A005", headers=h).status_code == 404


def test_staff_management(client, auth_headers):
    h = auth_headers("Helen Carter")

    r = client.post("/api/staff", json={"first_name": "Ian", "last_name": "Moss", "role": "Receptionist"}, headers=h)
    assert r.status_code == 201
    assert r.json()["staff_id"] == "ST005"

    r = client.get("/api/staff", params={"role": "Receptionist"}, headers=h)
    assert [s["staff_id"] for s in r.json()] == ["ST001", "ST005"]

    r = client.post("/api/clinicians", json={"first_name": "Zoe", "last_name": "Hart", "title": "GP"}, headers=h)
    assert r.json()["clinician_id"] == "C005"

    r = client.put("/api/staff/ST005", json={"department": "Front Desk", "access_level": "Standard"}, headers=h)
    assert r.json()["department"] == "Front Desk"
    assert r.json()["role"] == "Receptionist"

    r = client.put("/api/clinicians/C005", json={"speciality": "Dermatology Specialist"}, headers=h)
    assert r.json()["speciality"] == "Dermatology Specialist"
    assert client.get("/api/clinicians", headers=h).json()[-1]["full_name"] == "Zoe Hart"

    assert client.delete("/api/staff/ST005", headers=h).json() == {"ok": True}
    assert client.delete("/api/clinicians/C005", headers=h).json() == {"ok": True}
    assert client.delete("/api/clinicians/C005", headers=h).status_code == 404


def test_medical_records(client, auth_headers, accounts):
    h = auth_headers("C001")

    r = client.get("/api/medical-records/P001", headers=h)
    assert r.json()["medical_record"]["blood_type"] == "O+"

    r = client.put("/api/medical-records/P001", json={"history": "Asthma"}, headers=h)
    assert r.json()["history"] == "Asthma"
    assert r.json()["allergies"] == "Penicillin"

    r = client.post(
        "/api/medical-records/P001/prescriptions",
        json={"medication_name": "Salbutamol", "dosage": "100mcg"},
        headers=h,
    )
    assert r.status_code == 201
    assert r.json()["clinician_id"] == "C001"
    assert accounts.prescriptions.find_by_id(r.json()["prescription_id"]) is not None

    r = client.post(
        "/api/medical-records/P001/referrals",
        json={"referred_to_clinician_id": "C003", "referred_to_facility_id": "H001", "referral_reason": "Wheeze"},
        headers=h,
    )
    assert r.status_code == 201
    assert r.json()["referring_clinician_id"] == "C001"
    assert r.json()["status"] == "New"

    r = client.get("/api/medical-records/options", headers=h)
    assert "Salbutamol" in r.json()["medications"]


def test_document_write_failure_returns_500_with_detail(client, auth_headers, accounts, tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("", encoding="utf-8")
    accounts.output_dir = blocker

    r = client.post(
        "/api/medical-records/P001/prescriptions",
        json={"medication_name": "Salbutamol", "dosage": "100mcg"},
        headers=auth_headers("C001"),
    )

    assert r.status_code == 500
    assert "Cannot write" in r.json()["detail"]
    assert len(accounts.prescriptions) == 3


def test_role_login_needs_clinician_for_prescriptions(client, auth_headers):
    r = client.post(
        "/api/medical-records/P001/prescriptions",
        json={"medication_name": "Salbutamol", "dosage": "100mcg"},
        headers=auth_headers("gp"),
    )

    assert r.status_code == 422


def test_patient_portal_shows_only_own_data(client, auth_headers):
    r = client.get("/api/portal", params={"patient_id": "P002"}, headers=auth_headers("P001"))

    assert r.status_code == 200
    data = r.json()
    assert data["patient_id"] == "P001"
    assert len(data["appointments"]) == 2


def test_facilities(client, auth_headers):
    r = client.get("/api/facilities", headers=auth_headers("P001"))

    assert [f["facility_id"] for f in r.json()] == ["S001", "S002", "H001", "H002"]
