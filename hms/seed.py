from __future__ import annotations

import logging
from pathlib import Path

from . import csv_store
from .clinic import CSV_FILES
from .models import (
    Appointment,
    Clinician,
    Facility,
    MedicalRecord,
    Patient,
    Prescription,
    Referral,
    Staff,
)

logger = logging.getLogger(__name__)

FACILITIES = [
    ("S001", "Riverside Medical Centre", "GP Surgery", "12 River Road, Bristol", "BS1 4QT", "0117 496 0101",
     "reception@riverside.nhs.uk", "Mon-Fri 08:00-18:30", "Helen Carter", "40", "General Practice"),
    ("S002", "Hillview Surgery", "GP Surgery", "3 Hill Street, Bristol", "BS6 5AB", "0117 496 0202",
     "info@hillview.nhs.uk", "Mon-Fri 08:00-18:00", "Mark Evans", "25", "General Practice"),
    ("H001", "City General Hospital", "Hospital", "Marlborough Street, Bristol", "BS2 8HW", "0117 923 0000",
     "enquiries@citygeneral.nhs.uk", "24/7", "Dr Sarah Lane", "850", "Cardiology|Orthopaedics|Dermatology"),
    ("H002", "Southmead Hospital", "Hospital", "Southmead Road, Bristol", "BS10 5NB", "0117 950 5050",
     "contact@southmead.nhs.uk", "24/7", "James Holt", "1200", "Neurology|Oncology"),
]

CLINICIANS = [
    ("C001", "David", "Smith", "GP", "General Practice", "GMC1234567", "07700 900101",
     "d.smith@riverside.nhs.uk", "S001", "GP Surgery", "Full-time", "2015-03-01"),
    ("C002", "Priya", "Patel", "GP", "General Practice", "GMC2345678", "07700 900102",
     "p.patel@hillview.nhs.uk", "S002", "GP Surgery", "Part-time", "2018-09-15"),
    ("C003", "Robert", "Hughes", "Consultant", "Cardiology Consultant", "GMC3456789", "07700 900103",
     "r.hughes@citygeneral.nhs.uk", "H001", "Hospital", "Full-time", "2010-01-10"),
    ("C004", "Emma", "Wilson", "Practice Nurse", "General Practice", "NMC9876543", "07700 900104",
     "e.wilson@riverside.nhs.uk", "S001", "GP Surgery", "Full-time", "2019-06-03"),
]

STAFF = [
    ("ST001", "Laura", "Green", "Receptionist", "Front Desk", "S001", "07700 900201",
     "l.green@riverside.nhs.uk", "Full-time", "2020-02-17", "ST002", "Standard"),
    ("ST002", "Helen", "Carter", "Practice Manager", "Management", "S001", "07700 900202",
     "h.carter@riverside.nhs.uk", "Full-time", "2012-11-05", "", "Manager"),
    ("ST003", "Tom", "Baker", "Administrator", "Administration", "S002", "07700 900203",
     "t.baker@hillview.nhs.uk", "Part-time", "2021-04-12", "ST002", "Admin"),
    ("ST004", "Nina", "Roberts", "Healthcare Assistant", "Clinical Support", "S001", "07700 900204",
     "n.roberts@riverside.nhs.uk", "Full-time", "2022-08-01", "ST002", "Standard"),
]

PATIENTS = [
    ("P001", "John", "Doe", "1985-04-12", "485 777 3456", "M", "07700 900301", "john.doe@example.com",
     "4 Elm Close, Bristol", "BS3 1AA", "Jane Doe", "07700 900302", "2016-05-20", "S001"),
    ("P002", "Mary", "Jones", "1972-11-30", "943 476 5919", "F", "07700 900303", "mary.jones@example.com",
     "17 Oak Avenue, Bristol", "BS7 9QP", "Peter Jones", "07700 900304", "2012-01-08", "S001"),
    ("P003", "Ahmed", "Khan", "1990-07-02", "401 023 2137", "M", "07700 900305", "a.khan@example.com",
     "22 Birch Way, Bristol", "BS5 6RS", "Sara Khan", "07700 900306", "2019-10-11", "S002"),
    ("P004", "Sophie", "Turner", "2001-02-19", "606 325 8814", "F", "07700 900307", "sophie.t@example.com",
     "Flat 2, 9 Quay Street, Bristol", "BS1 2JL", "Claire Turner", "07700 900308", "2023-03-27", "S002"),
]

APPOINTMENTS = [
    ("A001", "P001", "C001", "S001", "2025-12-26", "09:00", "15", "Routine Consultation", "Scheduled",
     "Persistent cough", "", "2025-12-01", "2025-12-01"),
    ("A002", "P002", "C001", "S001", "2025-12-26", "09:30", "15", "Follow-up", "Scheduled",
     "Blood pressure review", "Bring home readings", "2025-12-02", "2025-12-02"),
    ("A003", "P003", "C002", "S002", "2025-12-27", "11:00", "30", "Routine Consultation", "Completed",
     "Back pain", "", "2025-12-05", "2025-12-27"),
    ("A004", "P001", "C003", "H001", "2026-01-08", "14:15", "45", "Specialist Consultation", "Scheduled",
     "Cardiology assessment", "Referred by Dr Smith", "2025-12-20", "2025-12-20"),
]

PRESCRIPTIONS = [
    ("RX001", "P001", "C001", "A001", "2025-12-26", "Amoxicillin", "500mg", "Three times daily", "7", "21",
     "Take with food", "Boots Pharmacy", "Issued", "2025-12-26", ""),
    ("RX002", "P002", "C001", "A002", "2025-12-26", "Ramipril", "5mg", "Once daily", "28", "28",
     "Take in the morning", "Lloyds Pharmacy", "Collected", "2025-12-26", "2025-12-27"),
    ("RX003", "P003", "C002", "A003", "2025-12-27", "Ibuprofen", "400mg", "Twice daily", "5", "10",
     "Do not exceed stated dose", "Boots Pharmacy", "Issued", "2025-12-27", ""),
]

REFERRALS = [
    ("R001", "P001", "C001", "C003", "S001", "H001", "2025-12-26", "Urgent", "Chest pain on exertion",
     "Intermittent chest pain over three weeks, ECG normal.", "Echocardiogram", "Accepted", "A004",
     "", "2025-12-26", "2025-12-28"),
]

MEDICAL_RECORDS = [
    ("P001", "Penicillin", "O+", "Asthma (childhood)"),
    ("P002", "", "A-", "Hypertension"),
    ("P003", "Latex", "B+", ""),
    ("P004", "", "AB+", ""),
]

SAMPLE_DATA = {
    "facilities": (Facility, FACILITIES),
    "clinicians": (Clinician, CLINICIANS),
    "staff": (Staff, STAFF),
    "patients": (Patient, PATIENTS),
    "appointments": (Appointment, APPOINTMENTS),
    "prescriptions": (Prescription, PRESCRIPTIONS),
    "referrals": (Referral, REFERRALS),
    "medical_records": (MedicalRecord, MEDICAL_RECORDS),
}


def seed_base(data_dir: str | Path, overwrite: bool = False) -> list[Path]:
    """
    Write the sample CSV dataset (idempotent):
    existing files are left alone unless `overwrite` is set.
    Returns the files written.
    """
    data_dir = Path(data_dir)
    written = []
    for name, (record_type, rows) in SAMPLE_DATA.items():
        path = data_dir / CSV_FILES[name]
        if path.exists() and not overwrite:
            continue
        csv_store.write_rows(path, record_type.columns(), rows)
        written.append(path)
    if written:
        logger.info("Seeded %d CSV file(s) in %s", len(written), data_dir)
    return written
