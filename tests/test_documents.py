from datetime import date

import pytest

from hms.documents import append_referral_report, write_prescription_file, write_referral_letter
from hms.exceptions import StorageError
from hms.models import Facility, Patient, Prescription, Referral

DAY = date(2026, 3, 9)


def test_prescription_file(tmp_path):
    rx = Prescription(prescription_id="RX010", patient_id="P002", medication_name="Ramipril", dosage="5mg",
                      frequency="Once daily", instructions="Morning")
    path = write_prescription_file(tmp_path, rx, "David Smith", today=DAY)

    assert path == tmp_path / "prescriptions" / "prescription_P002_2026-03-09.txt"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "PRESCRIPTION"
    assert "Date: 09/03/2026" in lines
    assert "Medication: Ramipril" in lines


def test_referral_letter_uses_safe_patient_name(tmp_path):
    patient = Patient(patient_id="P010", first_name="Anne-Marie", last_name="O'Neil", date_of_birth="1980-01-01")
    referral = Referral(referral_id="R010", urgency_level="Urgent", clinical_summary="Rash", requested_investigations="Dermatology")
    facility = Facility(facility_id="H001", facility_name="City General Hospital")

    path = write_referral_letter(tmp_path, referral, patient, facility, "Priya Patel", today=DAY)

    assert path.name == "Referral_Anne_Marie_O_Neil_2026-03-09.txt"
    text = path.read_text(encoding="utf-8")
    assert text.startswith("REFERRAL LETTER")
    assert "FACILITY: City General Hospital" in text
    assert "Urgency: Urgent" in text
    assert text.rstrip().endswith("Priya Patel")


def test_referral_report_appends(tmp_path):
    report = tmp_path / "out" / "referrals.txt"
    for rid in ("R001", "R002"):
        append_referral_report(report, Referral(referral_id=rid), None, None, None, None, None)

    text = report.read_text(encoding="utf-8")
    assert text.count("REFERRAL SUMMARY REPORT") == 2
    assert text.index("Referral ID: R001") < text.index("Referral ID: R002")


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "output"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(StorageError) as exc:
        write_prescription_file(blocker, Prescription(patient_id="P001"), "David Smith", today=DAY)
    assert "prescriptions" in exc.value.value
    with pytest.raises(StorageError):
        append_referral_report(blocker / "referrals.txt", Referral(referral_id="R001"), None, None, None, None, None)
