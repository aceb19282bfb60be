from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, TypeVar

from .clinic import Clinic
from .documents import append_referral_report, write_prescription_file, write_referral_letter
from .exceptions import InvalidRecordError, RecordNotFoundError
from .models import (
    Appointment,
    AppointmentStatus,
    Clinician,
    CsvRecord,
    MedicalRecord,
    Patient,
    Prescription,
    PrescriptionStatus,
    Referral,
    ReferralStatus,
    Staff,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=CsvRecord)

REFERRAL_REPORT_FILE = "referrals.txt"


# =========================
# Helper / DTO
# =========================
@dataclass(frozen=True)
class PatientDeletion:
    ok: bool
    appointments_removed: int
    prescriptions_removed: int
    medical_record_removed: bool


@dataclass(frozen=True)
class IssuedPrescription:
    prescription: Prescription
    file_path: Path


@dataclass(frozen=True)
class CreatedReferral:
    referral: Referral
    letter_path: Path


def _today(today: date | None) -> str:
    return (today or date.today()).isoformat()


def _apply(record: R, changes: dict[str, Any]) -> R:
    """Copy of `record` with the non-None `changes`; the ID field cannot change."""
    columns = set(record.columns())
    unknown = set(changes) - columns
    if unknown:
        raise InvalidRecordError(f"Unknown field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
    clean = {k: str(v).strip() for k, v in changes.items() if v is not None and k != record.id_field}
    return replace(record, **clean)


def _require(value: str | None, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidRecordError(f"{field} is required.", field=field)
    return value


def _get_or_404(repo, record_id: str, entity: str):
    record = repo.find_by_id(record_id)
    if record is None:
        raise RecordNotFoundError(f"{entity} {record_id} not found.", field="id", value=record_id)
    return record


# =========================
# Dashboard
# =========================
def appointment_flat(clinic: Clinic, a: Appointment) -> dict:
    """Appointment row with patient, clinician and facility names resolved."""
    patient = clinic.patients.find_by_id(a.patient_id)
    clinician = clinic.clinicians.find_by_id(a.clinician_id)
    row = a.as_dict()
    row.update(
        patient_name=patient.full_name if patient else a.patient_id,
        clinician_name=clinician.full_name if clinician else a.clinician_id,
        facility_name=clinic.facilities.name_of(a.facility_id),
    )
    return row


def appointments_on_flat(clinic: Clinic, day: date) -> list[dict]:
    return [appointment_flat(clinic, a) for a in clinic.appointments.on_date(day.isoformat())]


# =========================
# Patient management
# =========================
def search_patients(clinic: Clinic, patient_id: str = "", name: str = "", nhs_number: str = "") -> list[Patient]:
    return clinic.patients.search(patient_id, name, nhs_number)


def register_patient(clinic: Clinic, today: date | None = None, **fields: Any) -> Patient:
    """
    Use case: register a new patient.
    - next P-number ID, registration date defaults to today
    - an empty medical record is created alongside
    """
    _require(fields.get("first_name"), "first_name")
    _require(fields.get("last_name"), "last_name")
    fields.pop("patient_id", None)
    fields.setdefault("registration_date", None)
    if not fields["registration_date"]:
        fields["registration_date"] = _today(today)

    p = _apply(Patient(patient_id=clinic.patients.generate_new_id()), fields)
    clinic.patients.add(p)
    clinic.medical_records.initialize_record(p.patient_id)
    return p


def edit_patient(clinic: Clinic, patient_id: str, **changes: Any) -> Patient:
    current = _get_or_404(clinic.patients, patient_id, "Patient")
    return clinic.patients.update(_apply(current, changes))


def delete_patient(clinic: Clinic, patient_id: str, cascade: bool = True) -> PatientDeletion:
    """
    Use case: delete a patient.
    With cascade, appointments, prescriptions and the medical record of the
    patient are removed too (the repositories never do this on their own).
    """
    patient = clinic.patients.find_by_id(patient_id)
    if patient is None:
        return PatientDeletion(False, 0, 0, False)

    clinic.patients.delete(patient.patient_id)
    if not cascade:
        return PatientDeletion(True, 0, 0, False)

    appts = clinic.appointments.delete_all_by_patient_id(patient.patient_id)
    rx = clinic.prescriptions.delete_all_by_patient_id(patient.patient_id)
    rec = clinic.medical_records.delete_record(patient.patient_id)
    logger.info("Patient %s deleted (%d appointments, %d prescriptions)", patient.patient_id, appts, rx)
    return PatientDeletion(True, appts, rx, rec)


# =========================
# Staff management
# =========================
def search_staff(clinic: Clinic, term: str = "", role: str = "All") -> list[Staff]:
    return clinic.staff.search(term, role)


def register_staff(clinic: Clinic, today: date | None = None, **fields: Any) -> Staff:
    _require(fields.get("first_name"), "first_name")
    _require(fields.get("last_name"), "last_name")
    _require(fields.get("role"), "role")
    fields.pop("staff_id", None)
    if not fields.get("start_date"):
        fields["start_date"] = _today(today)
    s = _apply(Staff(staff_id=clinic.staff.generate_new_id()), fields)
    return clinic.staff.add(s)


def edit_staff(clinic: Clinic, staff_id: str, **changes: Any) -> Staff:
    current = _get_or_404(clinic.staff, staff_id, "Staff")
    return clinic.staff.update(_apply(current, changes))


def remove_staff(clinic: Clinic, staff_id: str) -> bool:
    return clinic.staff.delete(staff_id)


def register_clinician(clinic: Clinic, today: date | None = None, **fields: Any) -> Clinician:
    _require(fields.get("first_name"), "first_name")
    _require(fields.get("last_name"), "last_name")
    _require(fields.get("title"), "title")
    fields.pop("clinician_id", None)
    if not fields.get("start_date"):
        fields["start_date"] = _today(today)
    c = _apply(Clinician(clinician_id=clinic.clinicians.generate_new_id()), fields)
    return clinic.clinicians.add(c)


def edit_clinician(clinic: Clinic, clinician_id: str, **changes: Any) -> Clinician:
    current = _get_or_404(clinic.clinicians, clinician_id, "Clinician")
    return clinic.clinicians.update(_apply(current, changes))


def remove_clinician(clinic: Clinic, clinician_id: str) -> bool:
    return clinic.clinicians.delete(clinician_id)


# =========================
# Appointments
# =========================
def book_appointment(
    clinic: Clinic,
    patient_id: str,
    clinician_id: str,
    facility_id: str,
    appointment_date: str,
    appointment_time: str,
    duration_minutes: str | int = 15,
    appointment_type: str = "Routine Consultation",
    reason_for_visit: str = "",
    notes: str = "",
    today: date | None = None,
) -> Appointment:
    """
    Use case: book an appointment.
    Patient and clinician must exist; the new row is Scheduled.
    """
    if clinic.patients.find_by_id(patient_id) is None:
        raise InvalidRecordError(f"Unknown patient {patient_id}.", field="patient_id", value=patient_id)
    if clinic.clinicians.find_by_id(clinician_id) is None:
        raise InvalidRecordError(f"Unknown clinician {clinician_id}.", field="clinician_id", value=clinician_id)
    _validate_slot(appointment_date, appointment_time)

    stamp = _today(today)
    a = Appointment(
        appointment_id=clinic.appointments.generate_new_id(),
        patient_id=patient_id.strip(),
        clinician_id=clinician_id.strip(),
        facility_id=(facility_id or "").strip(),
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        duration_minutes=str(duration_minutes),
        appointment_type=appointment_type,
        status=AppointmentStatus.SCHEDULED.value,
        reason_for_visit=reason_for_visit,
        notes=notes,
        created_date=stamp,
        last_modified=stamp,
    )
    return clinic.appointments.add(a)


def _validate_slot(day: str | None, time: str | None) -> None:
    try:
        if day:
            datetime.strptime(day, "%Y-%m-%d")
        if time:
            datetime.strptime(time, "%H:%M")
    except ValueError as e:
        raise InvalidRecordError(f"Invalid date/time: {e}", field="appointment_date") from e
    if not day or not time:
        raise InvalidRecordError("Appointment date and time are required.", field="appointment_date")


def edit_appointment(clinic: Clinic, appointment_id: str, today: date | None = None, **changes: Any) -> Appointment:
    current = _get_or_404(clinic.appointments, appointment_id, "Appointment")
    patient_id = changes.get("patient_id")
    if patient_id is not None and clinic.patients.find_by_id(patient_id) is None:
        raise InvalidRecordError(f"Unknown patient {patient_id}.", field="patient_id", value=patient_id)
    clinician_id = changes.get("clinician_id")
    if clinician_id is not None and clinic.clinicians.find_by_id(clinician_id) is None:
        raise InvalidRecordError(f"Unknown clinician {clinician_id}.", field="clinician_id", value=clinician_id)
    status = changes.get("status")
    if status is not None and status not in {s.value for s in AppointmentStatus}:
        raise InvalidRecordError(f"Invalid status {status}.", field="status", value=status)
    updated = _apply(current, changes)
    _validate_slot(updated.appointment_date, updated.appointment_time)
    updated.last_modified = _today(today)
    return clinic.appointments.update(updated)


def cancel_appointment(clinic: Clinic, appointment_id: str) -> bool:
    """Cancelling removes the appointment row."""
    return clinic.appointments.delete(appointment_id)


APPOINTMENT_FILTERS = ("patient_id", "patient_name", "clinician_id")


def filter_appointments(clinic: Clinic, by: str, text: str) -> list[Appointment]:
    """Substring filter used by the appointments panel; empty text keeps all."""
    if by not in APPOINTMENT_FILTERS:
        raise InvalidRecordError(f"Unknown filter {by}.", field="by", value=by)
    text = (text or "").strip().lower()
    items = clinic.appointments.get_all()
    if not text:
        return items

    out = []
    for a in items:
        if by == "patient_id":
            hit = text in a.patient_id.lower()
        elif by == "clinician_id":
            hit = text in a.clinician_id.lower()
        else:
            p = clinic.patients.find_by_id(a.patient_id)
            hit = p is not None and text in p.full_name.lower()
        if hit:
            out.append(a)
    return out


# =========================
# Medical records
# =========================
def patient_summary(clinic: Clinic, patient_id: str) -> dict:
    """Everything the medical records panel shows for one patient."""
    p = _get_or_404(clinic.patients, patient_id, "Patient")
    record = clinic.medical_records.find_by_patient_id(p.patient_id)
    return {
        "patient": p.as_dict() | {"full_name": p.full_name},
        "medical_record": record.as_dict() if record else None,
        "appointments": [appointment_flat(clinic, a) for a in clinic.appointments.for_patient(p.patient_id)],
        "prescriptions": [rx.as_dict() for rx in clinic.prescriptions.for_patient(p.patient_id)],
        "referrals": [r.as_dict() for r in clinic.referrals.for_patient(p.patient_id)],
    }


def update_medical_record(
    clinic: Clinic,
    patient_id: str,
    allergies: str | None = None,
    blood_type: str | None = None,
    history: str | None = None,
) -> MedicalRecord:
    p = _get_or_404(clinic.patients, patient_id, "Patient")
    current = clinic.medical_records.initialize_record(p.patient_id)
    updated = _apply(current, {"allergies": allergies, "blood_type": blood_type, "history": history})
    return clinic.medical_records.update(updated)


def issue_prescription(
    clinic: Clinic,
    patient_id: str,
    clinician_id: str,
    medication_name: str,
    dosage: str,
    frequency: str = "",
    duration_days: str | int = "",
    quantity: str | int = "",
    instructions: str = "",
    pharmacy_name: str = "",
    appointment_id: str = "",
    today: date | None = None,
) -> IssuedPrescription:
    """
    Use case: issue a prescription.
    - next RX-number, status Issued, dated today
    - writes the prescription text file, then saves the row
    """
    p = _get_or_404(clinic.patients, patient_id, "Patient")
    prescriber = clinic.clinicians.find_by_id(clinician_id)
    _require(medication_name, "medication_name")
    _require(dosage, "dosage")

    stamp = _today(today)
    rx = Prescription(
        prescription_id=clinic.prescriptions.generate_new_id(),
        patient_id=p.patient_id,
        clinician_id=clinician_id.strip(),
        appointment_id=appointment_id,
        prescription_date=stamp,
        medication_name=medication_name.strip(),
        dosage=dosage.strip(),
        frequency=frequency,
        duration_days=str(duration_days),
        quantity=str(quantity),
        instructions=instructions,
        pharmacy_name=pharmacy_name,
        status=PrescriptionStatus.ISSUED.value,
        issue_date=stamp,
        collection_date="",
    )
    path = write_prescription_file(
        clinic.output_dir, rx, prescriber.full_name if prescriber else clinician_id, today=today
    )
    clinic.prescriptions.add(rx)
    return IssuedPrescription(rx, path)


def create_referral(
    clinic: Clinic,
    patient_id: str,
    referring_clinician_id: str,
    referred_to_clinician_id: str,
    referring_facility_id: str,
    referred_to_facility_id: str,
    urgency_level: str,
    referral_reason: str,
    clinical_summary: str = "",
    requested_investigations: str = "",
    notes: str = "",
    appointment_id: str = "",
    today: date | None = None,
) -> CreatedReferral:
    """
    Use case: refer a patient.
    - next R-number, status New
    - writes the referral letter, then appends the referral summary report
    - the row is saved only once both documents are written
    """
    p = _get_or_404(clinic.patients, patient_id, "Patient")
    _require(referral_reason, "referral_reason")
    _require(urgency_level, "urgency_level")

    stamp = _today(today)
    r = Referral(
        referral_id=clinic.referrals.generate_new_id(),
        patient_id=p.patient_id,
        referring_clinician_id=referring_clinician_id,
        referred_to_clinician_id=referred_to_clinician_id,
        referring_facility_id=referring_facility_id,
        referred_to_facility_id=referred_to_facility_id,
        referral_date=stamp,
        urgency_level=urgency_level,
        referral_reason=referral_reason,
        clinical_summary=clinical_summary,
        requested_investigations=requested_investigations,
        status=ReferralStatus.NEW.value,
        appointment_id=appointment_id,
        notes=notes,
        created_date=stamp,
        last_updated=stamp,
    )
    referring = clinic.clinicians.find_by_id(referring_clinician_id)
    referred_to_facility = clinic.facilities.find_by_id(referred_to_facility_id)
    letter = write_referral_letter(
        clinic.output_dir,
        r,
        p,
        referred_to_facility,
        referring.full_name if referring else referring_clinician_id,
        today=today,
    )
    append_referral_report(
        clinic.output_dir / REFERRAL_REPORT_FILE,
        r,
        p,
        referring,
        clinic.clinicians.find_by_id(referred_to_clinician_id),
        clinic.facilities.find_by_id(referring_facility_id),
        referred_to_facility,
    )
    clinic.referrals.add(r)
    return CreatedReferral(r, letter)


# =========================
# Patient portal
# =========================
def patient_dashboard(clinic: Clinic, patient_id: str) -> dict:
    """Own appointments (with clinician/facility names) and prescriptions of a patient."""
    p = clinic.patients.find_by_id(patient_id)

    appointments = []
    for a in clinic.appointments.for_patient(patient_id):
        row = appointment_flat(clinic, a)
        appointments.append(
            {
                "appointment_date": a.appointment_date,
                "appointment_time": a.appointment_time,
                "clinician_name": row["clinician_name"],
                "facility_name": row["facility_name"],
                "status": a.status,
            }
        )

    return {
        "patient_id": patient_id,
        "patient_name": p.full_name if p else f"Patient {patient_id}",
        "appointments": appointments,
        "prescriptions": [
            {
                "medication_name": rx.medication_name,
                "dosage": rx.dosage,
                "instructions": rx.instructions,
                "prescription_date": rx.prescription_date,
            }
            for rx in clinic.prescriptions.for_patient(patient_id)
        ],
    }
