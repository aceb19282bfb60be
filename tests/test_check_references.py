from hms.models import Appointment, MedicalRecord, Referral
from hms.tools.check_references import Orphan, find_orphans


def test_sample_data_is_consistent(clinic):
    assert find_orphans(clinic) == []


def test_reports_dangling_references(clinic):
    clinic.appointments.add(Appointment(appointment_id="A050", patient_id="P404", clinician_id="C001", facility_id=""))
    clinic.referrals.add(Referral(referral_id="R050", patient_id="P001", referred_to_facility_id="H404"))
    clinic.medical_records.add(MedicalRecord(patient_id="P405"))

    assert find_orphans(clinic) == [
        Orphan("appointment", "A050", "patient_id", "P404"),
        Orphan("referral", "R050", "referred_to_facility_id", "H404"),
        Orphan("medical_record", "P405", "patient_id", "P405"),
    ]


def test_deleting_patient_without_cascade_leaves_orphans(clinic):
    clinic.patients.delete("P003")

    assert {(o.entity, o.record_id) for o in find_orphans(clinic)} == {
        ("appointment", "A003"),
        ("prescription", "RX003"),
        ("medical_record", "P003"),
    }
