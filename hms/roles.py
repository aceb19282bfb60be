"""
Roles and panel visibility.

A role is a plain string coming from the staff/clinician CSV data; it is
normalised here into `Role` and used only to decide which dashboard
panels a user may open.
"""
from __future__ import annotations

import enum

from .exceptions import PermissionDeniedError
from .models import Clinician, Staff

DEVELOPER_ID = "DEV001"


class Role(str, enum.Enum):
    GP = "GP"
    SPECIALIST = "Specialist"
    NURSE = "Nurse"
    ADMIN = "Admin"
    RECEPTIONIST = "Receptionist"
    PATIENT = "Patient"
    DEVELOPER = "Developer"
    STAFF = "Staff"

    @classmethod
    def parse(cls, value: str | Role | None) -> Role:
        """Case-insensitive lookup; unknown strings fall back to STAFF."""
        if isinstance(value, Role):
            return value
        text = (value or "").strip().lower()
        for r in cls:
            if r.value.lower() == text:
                return r
        return cls.STAFF


class Panel(str, enum.Enum):
    DASHBOARD = "dashboard"
    APPOINTMENTS = "appointments"
    MEDICAL_RECORDS = "medical_records"
    STAFF = "staff"
    PATIENTS = "patients"
    PATIENT_PORTAL = "patient_portal"


PANEL_TITLES = {
    Panel.DASHBOARD: "Dashboard",
    Panel.APPOINTMENTS: "Appointments",
    Panel.MEDICAL_RECORDS: "Medical Records",
    Panel.STAFF: "Manage Staff",
    Panel.PATIENTS: "Manage Patients",
    Panel.PATIENT_PORTAL: "Patient Dashboard",
}

_PANELS: dict[Role, tuple[Panel, ...]] = {
    Role.DEVELOPER: tuple(Panel),
    Role.GP: (Panel.DASHBOARD, Panel.APPOINTMENTS, Panel.MEDICAL_RECORDS),
    Role.SPECIALIST: (Panel.DASHBOARD, Panel.APPOINTMENTS, Panel.MEDICAL_RECORDS),
    Role.NURSE: (Panel.DASHBOARD, Panel.MEDICAL_RECORDS),
    Role.ADMIN: (Panel.DASHBOARD, Panel.STAFF, Panel.PATIENTS),
    Role.RECEPTIONIST: (Panel.DASHBOARD, Panel.PATIENTS, Panel.APPOINTMENTS),
    Role.PATIENT: (Panel.PATIENT_PORTAL,),
    Role.STAFF: (Panel.DASHBOARD,),
}

_DEFAULT_PANEL: dict[Role, Panel] = {
    Role.NURSE: Panel.MEDICAL_RECORDS,
    Role.ADMIN: Panel.STAFF,
    Role.RECEPTIONIST: Panel.PATIENTS,
    Role.PATIENT: Panel.PATIENT_PORTAL,
}


def visible_panels(role: str | Role) -> list[Panel]:
    return list(_PANELS[Role.parse(role)])


def default_panel(role: str | Role) -> Panel:
    return _DEFAULT_PANEL.get(Role.parse(role), Panel.DASHBOARD)


def can_access(role: str | Role, panel: Panel) -> bool:
    return panel in _PANELS[Role.parse(role)]


def require_panel(role: str | Role, panel: Panel) -> None:
    if not can_access(role, panel):
        raise PermissionDeniedError(
            f"Role {Role.parse(role).value} cannot open {PANEL_TITLES[panel]}.", field="role", value=str(role)
        )


# =========================
# Role from CSV data
# =========================
def role_for_clinician(clinician: Clinician) -> Role:
    title = (clinician.title or "").lower()
    speciality = (clinician.speciality or "").lower()
    if "nurse" in title:
        return Role.NURSE
    if "specialist" in speciality or "consultant" in speciality:
        return Role.SPECIALIST
    return Role.GP


def role_for_staff(staff: Staff) -> Role:
    role = (staff.role or "").strip()
    lowered = role.lower()
    if lowered == "developer" or (staff.staff_id or "").strip().upper() == DEVELOPER_ID:
        return Role.DEVELOPER
    if "admin" in lowered or ("manager" in lowered and "practice" in lowered):
        return Role.ADMIN
    if "receptionist" in lowered:
        return Role.RECEPTIONIST
    if "nurse" in lowered:
        return Role.NURSE
    if "gp" in lowered.split() or "general practitioner" in lowered:
        return Role.GP
    if "specialist" in lowered or "consultant" in lowered:
        return Role.SPECIALIST
    return Role.STAFF
