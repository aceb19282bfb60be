from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Generic, TypeVar

from . import csv_store
from .exceptions import DuplicateRecordError, InvalidRecordError, RecordNotFoundError
from .models import (
    Appointment,
    Clinician,
    CsvRecord,
    Facility,
    MedicalRecord,
    Patient,
    Prescription,
    Referral,
    Staff,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=CsvRecord)


def _norm(value: str | None) -> str:
    return (value or "").strip()


def _contains(haystack: str | None, needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


# =========================
# Base repository
# =========================
class CsvRepository(Generic[T]):
    """
    In-memory list of records synchronised with one CSV file.

    - loaded once at construction (missing file -> empty list)
    - add() appends a single line, update()/delete() rewrite the whole file
    - no referential integrity: related rows are cleaned up by the callers
    """

    record_type: type[T]
    id_prefix: str = ""
    entity_name: str = "record"
    # short rows are skipped unless the repository pads them with ""
    pad_short_rows: bool = False

    def __init__(self, csv_path: str | Path):
        self.csv_path = Path(csv_path)
        self._records: list[T] = []
        self._load()

    # ---------- load / save ----------
    def _load(self) -> None:
        self._records = []
        expected = len(self.record_type.columns())
        try:
            rows = csv_store.read_rows(self.csv_path)
        except FileNotFoundError:
            logger.warning("%s not found: %s repository starts empty.", self.csv_path, self.entity_name)
            return

        for row in rows:
            if len(row) < expected:
                if not self.pad_short_rows:
                    logger.warning(
                        "Skipping invalid %s row with insufficient columns (%d < %d): %s",
                        self.entity_name, len(row), expected, ",".join(row),
                    )
                    continue
                row = row + [""] * (expected - len(row))
            self._records.append(self.record_type.from_row(row))

        logger.info("Loaded %d %s rows from %s", len(self._records), self.entity_name, self.csv_path)

    def reload(self) -> None:
        self._load()

    def save_all(self) -> None:
        self._write(self._records)

    def _write(self, records: list[T]) -> None:
        csv_store.write_rows(self.csv_path, self.record_type.columns(), (r.to_row() for r in records))

    def _replace_all(self, records: list[T]) -> None:
        # memory only changes once the file rewrite succeeded
        self._write(records)
        self._records = records

    # ---------- queries ----------
    def get_all(self) -> list[T]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def find_by_id(self, record_id: str | None) -> T | None:
        if record_id is None:
            return None
        wanted = record_id.strip()
        for r in self._records:
            if _norm(r.record_id) == wanted:
                return r
        return None

    def find_by(self, **criteria: str) -> list[T]:
        """Exact match on every given field (values are compared trimmed)."""
        return [
            r for r in self._records
            if all(_norm(getattr(r, k)) == _norm(v) for k, v in criteria.items())
        ]

    def generate_new_id(self, prefix: str | None = None) -> str:
        """Next ID after the highest `<prefix><digits>` present, e.g. P001 -> P002."""
        prefix = self.id_prefix if prefix is None else prefix
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for r in self._records:
            m = pattern.match(_norm(r.record_id))
            if m:
                highest = max(highest, int(m.group(1)))
        return f"{prefix}{highest + 1:03d}"

    # ---------- mutations ----------
    def validate(self, record: T) -> None:
        """Hook for per-entity checks; raise InvalidRecordError."""
        if not _norm(record.record_id):
            raise InvalidRecordError(f"{self.entity_name} ID is required.", field=record.id_field, value=record.record_id)

    def add(self, record: T) -> T:
        setattr(record, record.id_field, _norm(record.record_id))
        self.validate(record)
        if self.find_by_id(record.record_id) is not None:
            raise DuplicateRecordError(
                f"{self.entity_name} with ID {record.record_id} already exists.",
                field=record.id_field,
                value=record.record_id,
            )

        self._records.append(record)
        try:
            csv_store.append_row(self.csv_path, self.record_type.columns(), record.to_row())
        except Exception:
            self._records.remove(record)
            raise
        logger.info("Added %s %s", self.entity_name, record.record_id)
        return record

    # single-line append is the default persistence of add()
    add_and_append = add

    def update(self, record: T) -> T:
        setattr(record, record.id_field, _norm(record.record_id))
        self.validate(record)
        for i, existing in enumerate(self._records):
            if _norm(existing.record_id) == record.record_id:
                records = list(self._records)
                records[i] = record
                self._replace_all(records)
                logger.info("Updated %s %s", self.entity_name, record.record_id)
                return record
        raise RecordNotFoundError(
            f"{self.entity_name} with ID {record.record_id} not found.",
            field=record.id_field,
            value=record.record_id,
        )

    def delete(self, record_id: str) -> bool:
        target = self.find_by_id(record_id)
        if target is None:
            return False
        self._replace_all([r for r in self._records if r is not target])
        logger.info("Deleted %s %s", self.entity_name, target.record_id)
        return True

    def _delete_where(self, field: str, value: str) -> int:
        value = _norm(value)
        if not value:
            raise InvalidRecordError(f"Cannot delete {self.entity_name} rows: {field} is empty.", field=field)
        kept = [r for r in self._records if _norm(getattr(r, field)) != value]
        removed = len(self._records) - len(kept)
        if removed:
            self._replace_all(kept)
        logger.info("Deleted %d %s row(s) for %s=%s", removed, self.entity_name, field, value)
        return removed


# =========================
# Entity repositories
# =========================
class PatientRepository(CsvRepository[Patient]):
    record_type = Patient
    id_prefix = "P"
    entity_name = "patient"

    ID_PATTERN = re.compile(r"^P\d{3,}$")

    def validate(self, record: Patient) -> None:
        super().validate(record)
        if not self.ID_PATTERN.match(record.patient_id):
            raise InvalidRecordError(
                f"Invalid patient ID format. Must be P001, P002, etc. Got: {record.patient_id}",
                field="patient_id",
                value=record.patient_id,
            )

    def search(self, patient_id: str = "", name: str = "", nhs_number: str = "") -> list[Patient]:
        """Case-insensitive substring search; empty criteria are ignored."""
        patient_id, name, nhs_number = _norm(patient_id), _norm(name), _norm(nhs_number)
        out = []
        for p in self._records:
            if patient_id and not _contains(p.patient_id, patient_id):
                continue
            if name and not _contains(p.full_name, name):
                continue
            if nhs_number and not _contains(p.nhs_number.replace(" ", ""), nhs_number.replace(" ", "")):
                continue
            out.append(p)
        return out


class ClinicianRepository(CsvRepository[Clinician]):
    record_type = Clinician
    id_prefix = "C"
    entity_name = "clinician"

    def search(self, term: str = "") -> list[Clinician]:
        term = _norm(term)
        if not term:
            return self.get_all()
        return [
            c for c in self._records
            if any(_contains(v, term) for v in (c.clinician_id, c.first_name, c.last_name, c.email, c.speciality))
        ]


class StaffRepository(CsvRepository[Staff]):
    record_type = Staff
    id_prefix = "ST"
    entity_name = "staff"

    SUBSTRING_ROLES = ("Nurse", "Consultant")

    def search(self, term: str = "", role: str = "All") -> list[Staff]:
        """
        Filter used by the staff management panel:
        - role "All" keeps everyone, Nurse/Consultant match by substring
        - term matches ID, first name, last name or email
        """
        term = _norm(term).lower()
        role = _norm(role) or "All"
        out = []
        for s in self._records:
            if role != "All":
                staff_role = _norm(s.role)
                if not (staff_role == role or (role in self.SUBSTRING_ROLES and role in staff_role)):
                    continue
            if term and not any(_contains(v, term) for v in (s.staff_id, s.first_name, s.last_name, s.email)):
                continue
            out.append(s)
        return out


class AppointmentRepository(CsvRepository[Appointment]):
    record_type = Appointment
    id_prefix = "A"
    entity_name = "appointment"

    def for_patient(self, patient_id: str) -> list[Appointment]:
        return self.find_by(patient_id=patient_id)

    def for_clinician(self, clinician_id: str) -> list[Appointment]:
        return self.find_by(clinician_id=clinician_id)

    def on_date(self, day: str) -> list[Appointment]:
        items = self.find_by(appointment_date=day)
        return sorted(items, key=lambda a: a.appointment_time)

    def delete_all_by_patient_id(self, patient_id: str) -> int:
        return self._delete_where("patient_id", patient_id)

class PrescriptionRepository(CsvRepository[Prescription]):
    record_type = Prescription
    id_prefix = "RX"
    entity_name = "prescription"
    pad_short_rows = True

    def for_patient(self, patient_id: str) -> list[Prescription]:
        if not _norm(patient_id):
            return []
        return self.find_by(patient_id=patient_id)

    def _distinct(self, field: str) -> list[str]:
        return sorted({_norm(getattr(p, field)) for p in self._records if _norm(getattr(p, field))})

    def medication_options(self) -> list[str]:
        return self._distinct("medication_name")

    def pharmacy_options(self) -> list[str]:
        return self._distinct("pharmacy_name")

    def delete_all_by_patient_id(self, patient_id: str) -> int:
        return self._delete_where("patient_id", patient_id)

class ReferralRepository(CsvRepository[Referral]):
    record_type = Referral
    id_prefix = "R"
    entity_name = "referral"

    def for_patient(self, patient_id: str) -> list[Referral]:
        return self.find_by(patient_id=patient_id)


class FacilityRepository(CsvRepository[Facility]):
    record_type = Facility
    id_prefix = "S"
    entity_name = "facility"

    def name_of(self, facility_id: str) -> str:
        f = self.find_by_id(facility_id)
        return f.facility_name if f else facility_id


class MedicalRecordRepository(CsvRepository[MedicalRecord]):
    record_type = MedicalRecord
    entity_name = "medical record"

    def find_by_patient_id(self, patient_id: str) -> MedicalRecord | None:
        return self.find_by_id(patient_id)

    def initialize_record(self, patient_id: str) -> MedicalRecord:
        """Create an empty record for the patient (no-op if one exists)."""
        patient_id = _norm(patient_id)
        if not patient_id:
            raise InvalidRecordError("Cannot initialize medical record: patient ID is empty.", field="patient_id")
        existing = self.find_by_patient_id(patient_id)
        if existing is not None:
            logger.info("Medical record for patient %s already exists.", patient_id)
            return existing
        return self.add(MedicalRecord(patient_id=patient_id))

    def delete_record(self, patient_id: str) -> bool:
        return self.delete(patient_id)
