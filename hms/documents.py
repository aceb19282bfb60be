from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from .exceptions import StorageError
from .models import Clinician, Facility, Patient, Prescription, Referral

logger = logging.getLogger(__name__)

REPORT_RULE = "=" * 46


def _safe_name(text: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", text)


def _write(path: Path, lines: list[str], mode: str = "w") -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open(mode, encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
    except OSError as e:
        logger.error("Failed to write document %s: %s", path, e)
        raise StorageError(f"Cannot write {path}: {e}", value=str(path)) from e


def write_prescription_file(
    output_dir: Path,
    prescription: Prescription,
    practitioner_name: str | None,
    today: date | None = None,
) -> Path:
    """Write prescriptions/prescription_<patient>_<date>.txt and return its path."""
    today = today or date.today()
    path = Path(output_dir) / "prescriptions" / f"prescription_{prescription.patient_id}_{today.isoformat()}.txt"

    lines = [
        "PRESCRIPTION",
        f"Date: {today.strftime('%d/%m/%Y')}",
        f"Practitioner: {practitioner_name or ''}",
        f"Patient ID: {prescription.patient_id}",
        f"Medication: {prescription.medication_name}",
        f"Dosage: {prescription.dosage}",
        f"Frequency: {prescription.frequency}",
        f"Notes: {prescription.instructions}",
        "",
        "Digitally signed by the practitioner.",
    ]
    _write(path, lines)
    logger.info("Prescription file generated: %s", path)
    return path


def write_referral_letter(
    output_dir: Path,
    referral: Referral,
    patient: Patient,
    referred_to_facility: Facility | None,
    practitioner_name: str | None,
    today: date | None = None,
) -> Path:
    """Write referrals/Referral_<Patient_Name>_<date>.txt and return its path."""
    today = today or date.today()
    path = Path(output_dir) / "referrals" / f"Referral_{_safe_name(patient.full_name)}_{today.isoformat()}.txt"

    facility = referred_to_facility.facility_name if referred_to_facility else referral.referred_to_facility_id
    lines = [
        "REFERRAL LETTER",
        f"Date: {today.strftime('%d/%m/%Y')}",
        f"TO: {referral.requested_investigations} Department",
        f"FACILITY: {facility}",
        f"RE: {patient.full_name}",
        f"DOB: {patient.date_of_birth}",
        f"NHS Number: {patient.nhs_number}",
        "",
        "Dear Consultant,",
        "",
        "I am referring this patient for further investigation regarding:",
        "",
        referral.clinical_summary,
        "",
        f"Urgency: {referral.urgency_level}",
        "",
        "Sincerely,",
        practitioner_name or "",
    ]
    _write(path, lines)
    logger.info("Referral letter generated: %s", path)
    return path


def append_referral_report(
    report_path: Path,
    referral: Referral,
    patient: Patient | None,
    referring: Clinician | None,
    referred_to: Clinician | None,
    referring_facility: Facility | None,
    referred_to_facility: Facility | None,
) -> None:
    """Append a referral summary block to the running report file."""
    lines = [REPORT_RULE, "            REFERRAL SUMMARY REPORT           ", REPORT_RULE]
    lines.append(f"Referral ID: {referral.referral_id}")
    if patient is not None:
        lines.append(f"Patient: {patient.full_name} (NHS: {patient.nhs_number})")
    if referring is not None:
        lines.append(f"Referring Clinician: {referring.full_name} ({referring.title} - {referring.speciality})")
    if referred_to is not None:
        lines.append(f"Referred To: {referred_to.full_name} ({referred_to.title} - {referred_to.speciality})")
    if referring_facility is not None:
        lines.append(f"Referring Facility: {referring_facility.facility_name} ({referring_facility.facility_type})")
    if referred_to_facility is not None:
        lines.append(
            f"Referred To Facility: {referred_to_facility.facility_name} ({referred_to_facility.facility_type})"
        )
    lines += [
        f"Referral Date: {referral.referral_date}",
        f"Urgency Level: {referral.urgency_level}",
        f"Reason for Referral: {referral.referral_reason}",
        f"Requested Investigations: {referral.requested_investigations}",
        f"Status: {referral.status}",
        "Clinical Summary:",
        referral.clinical_summary,
        "Notes:",
        referral.notes,
        f"Created Date: {referral.created_date}",
        f"Last Updated: {referral.last_updated}",
        "-" * 46,
        "",
    ]
    _write(Path(report_path), lines, mode="a")
