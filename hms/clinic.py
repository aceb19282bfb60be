from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import config
from .repositories import (
    AppointmentRepository,
    ClinicianRepository,
    FacilityRepository,
    MedicalRecordRepository,
    PatientRepository,
    PrescriptionRepository,
    ReferralRepository,
    StaffRepository,
)

CSV_FILES = {
    "patients": "patients.csv",
    "clinicians": "clinicians.csv",
    "staff": "staff.csv",
    "appointments": "appointments.csv",
    "prescriptions": "prescriptions.csv",
    "referrals": "referrals.csv",
    "facilities": "facilities.csv",
    "medical_records": "medical_records.csv",
}


@dataclass
class Clinic:
    """All repositories of one clinic, loaded from a single data directory."""

    data_dir: Path
    output_dir: Path
    patients: PatientRepository
    clinicians: ClinicianRepository
    staff: StaffRepository
    appointments: AppointmentRepository
    prescriptions: PrescriptionRepository
    referrals: ReferralRepository
    facilities: FacilityRepository
    medical_records: MedicalRecordRepository

    @classmethod
    def open(cls, data_dir: str | Path | None = None, output_dir: str | Path | None = None) -> "Clinic":
        data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
        if output_dir is not None:
            output_dir = Path(output_dir)
        elif data_dir == config.DATA_DIR:
            output_dir = config.OUTPUT_DIR
        else:
            output_dir = data_dir / "output"

        return cls(
            data_dir=data_dir,
            output_dir=output_dir,
            patients=PatientRepository(data_dir / CSV_FILES["patients"]),
            clinicians=ClinicianRepository(data_dir / CSV_FILES["clinicians"]),
            staff=StaffRepository(data_dir / CSV_FILES["staff"]),
            appointments=AppointmentRepository(data_dir / CSV_FILES["appointments"]),
            prescriptions=PrescriptionRepository(data_dir / CSV_FILES["prescriptions"]),
            referrals=ReferralRepository(data_dir / CSV_FILES["referrals"]),
            facilities=FacilityRepository(data_dir / CSV_FILES["facilities"]),
            medical_records=MedicalRecordRepository(data_dir / CSV_FILES["medical_records"]),
        )

    def reload(self) -> None:
        for name in CSV_FILES:
            getattr(self, name).reload()
