from __future__ import annotations

import sys
from dataclasses import dataclass

from hms.clinic import Clinic


@dataclass(frozen=True)
class Orphan:
    entity: str
    record_id: str
    field: str
    missing_id: str


def find_orphans(clinic: Clinic) -> list[Orphan]:
    """
    Rows whose patient / clinician / facility reference points at nothing.
    Empty references are not reported.
    """
    patients = {p.patient_id for p in clinic.patients.get_all()}
    clinicians = {c.clinician_id for c in clinic.clinicians.get_all()}
    facilities = {f.facility_id for f in clinic.facilities.get_all()}

    checks = [
        ("appointment", clinic.appointments.get_all(), [
            ("patient_id", patients), ("clinician_id", clinicians), ("facility_id", facilities),
        ]),
        ("prescription", clinic.prescriptions.get_all(), [
            ("patient_id", patients), ("clinician_id", clinicians),
        ]),
        ("referral", clinic.referrals.get_all(), [
            ("patient_id", patients),
            ("referring_clinician_id", clinicians),
            ("referred_to_clinician_id", clinicians),
            ("referring_facility_id", facilities),
            ("referred_to_facility_id", facilities),
        ]),
        ("medical_record", clinic.medical_records.get_all(), [
            ("patient_id", patients),
        ]),
    ]

    out = []
    for entity, records, refs in checks:
        for r in records:
            for field, known in refs:
                value = getattr(r, field)
                if value and value not in known:
                    out.append(Orphan(entity, r.record_id, field, value))
    return out


def main() -> None:
    data_dir = sys.argv[1] if len(sys.argv) > 1 else None
    clinic = Clinic.open(data_dir)
    print("DATA DIR:", clinic.data_dir)

    orphans = find_orphans(clinic)
    for o in orphans:
        print(f"{o.entity} {o.record_id}: {o.field} -> {o.missing_id} (missing)")
    print(f"Orphan references: {len(orphans)}")
    if orphans:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
