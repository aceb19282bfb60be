from __future__ import annotations

import enum
from dataclasses import astuple, dataclass, fields
from typing import ClassVar


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"


class PrescriptionStatus(str, enum.Enum):
    ISSUED = "Issued"
    COLLECTED = "Collected"
    PENDING = "Pending"
    CANCELLED = "Cancelled"


class ReferralStatus(str, enum.Enum):
    NEW = "New"
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    COMPLETED = "Completed"


class CsvRecord:
    """
    Mixin for flat records stored one per CSV line.
    Dataclass fields are declared in CSV column order, so the column list
    doubles as the file header.
    """

    id_field: ClassVar[str]

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row: list[str]):
        return cls(*row[: len(cls.columns())])

    def to_row(self) -> list[str]:
        return ["" if v is None else str(v) for v in astuple(self)]

    @property
    def record_id(self) -> str:
        return getattr(self, self.id_field)

    def as_dict(self) -> dict[str, str]:
        return dict(zip(self.columns(), self.to_row()))


class _PersonMixin:
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass
class Patient(_PersonMixin, CsvRecord):
    id_field: ClassVar[str] = "patient_id"

    patient_id: str = ""
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    nhs_number: str = ""
    gender: str = ""
    phone_number: str = ""
    email: str = ""
    address: str = ""
    postcode: str = ""
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    registration_date: str = ""
    gp_surgery_id: str = ""

    def __repr__(self) -> str:
        return f"Patient({self.patient_id}, {self.full_name})"


@dataclass
class Clinician(_PersonMixin, CsvRecord):
    id_field: ClassVar[str] = "clinician_id"

    clinician_id: str = ""
    first_name: str = ""
    last_name: str = ""
    title: str = ""
    speciality: str = ""
    gmc_number: str = ""
    phone_number: str = ""
    email: str = ""
    workplace_id: str = ""
    workplace_type: str = ""
    employment_status: str = ""
    start_date: str = ""

    def __repr__(self) -> str:
        return f"Clinician({self.clinician_id}, {self.title} {self.full_name}, {self.speciality})"


@dataclass
class Staff(_PersonMixin, CsvRecord):
    id_field: ClassVar[str] = "staff_id"

    staff_id: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = ""
    department: str = ""
    facility_id: str = ""
    phone_number: str = ""
    email: str = ""
    employment_status: str = ""
    start_date: str = ""
    line_manager: str = ""
    access_level: str = ""


@dataclass
class Appointment(CsvRecord):
    id_field: ClassVar[str] = "appointment_id"

    appointment_id: str = ""
    patient_id: str = ""
    clinician_id: str = ""
    facility_id: str = ""
    appointment_date: str = ""  # YYYY-MM-DD
    appointment_time: str = ""  # HH:MM
    duration_minutes: str = ""
    appointment_type: str = ""
    status: str = AppointmentStatus.SCHEDULED.value
    reason_for_visit: str = ""
    notes: str = ""
    created_date: str = ""
    last_modified: str = ""


@dataclass
class Prescription(CsvRecord):
    id_field: ClassVar[str] = "prescription_id"

    prescription_id: str = ""
    patient_id: str = ""
    clinician_id: str = ""
    appointment_id: str = ""
    prescription_date: str = ""
    medication_name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration_days: str = ""
    quantity: str = ""
    instructions: str = ""
    pharmacy_name: str = ""
    status: str = PrescriptionStatus.ISSUED.value
    issue_date: str = ""
    collection_date: str = ""


@dataclass
class Referral(CsvRecord):
    id_field: ClassVar[str] = "referral_id"

    referral_id: str = ""
    patient_id: str = ""
    referring_clinician_id: str = ""
    referred_to_clinician_id: str = ""
    referring_facility_id: str = ""
    referred_to_facility_id: str = ""
    referral_date: str = ""
    urgency_level: str = ""
    referral_reason: str = ""
    clinical_summary: str = ""
    requested_investigations: str = ""
    status: str = ReferralStatus.NEW.value
    appointment_id: str = ""
    notes: str = ""
    created_date: str = ""
    last_updated: str = ""


@dataclass
class Facility(CsvRecord):
    id_field: ClassVar[str] = "facility_id"

    facility_id: str = ""
    facility_name: str = ""
    facility_type: str = ""
    address: str = ""
    postcode: str = ""
    phone_number: str = ""
    email: str = ""
    opening_hours: str = ""
    manager_name: str = ""
    capacity: str = ""
    specialities_offered: str = ""


@dataclass
class MedicalRecord(CsvRecord):
    """Allergies, blood type and history of one patient (keyed by patient_id)."""

    id_field: ClassVar[str] = "patient_id"

    patient_id: str = ""
    allergies: str = ""
    blood_type: str = ""
    history: str = ""
