import pytest

from hms.exceptions import PermissionDeniedError
from hms.models import Clinician, Staff
from hms.roles import (
    Panel,
    Role,
    can_access,
    default_panel,
    require_panel,
    role_for_clinician,
    role_for_staff,
    visible_panels,
)


def test_parse_is_case_insensitive():
    assert Role.parse("receptionist") is Role.RECEPTIONIST
    assert Role.parse(" gp ") is Role.GP
    assert Role.parse(Role.NURSE) is Role.NURSE
    assert Role.parse("Janitor") is Role.STAFF
    assert Role.parse(None) is Role.STAFF


@pytest.mark.parametrize(
    "role, panels",
    [
        ("GP", [Panel.DASHBOARD, Panel.APPOINTMENTS, Panel.MEDICAL_RECORDS]),
        ("Specialist", [Panel.DASHBOARD, Panel.APPOINTMENTS, Panel.MEDICAL_RECORDS]),
        ("Nurse", [Panel.DASHBOARD, Panel.MEDICAL_RECORDS]),
        ("Admin", [Panel.DASHBOARD, Panel.STAFF, Panel.PATIENTS]),
        ("Receptionist", [Panel.DASHBOARD, Panel.PATIENTS, Panel.APPOINTMENTS]),
        ("Patient", [Panel.PATIENT_PORTAL]),
        ("Cleaner", [Panel.DASHBOARD]),
    ],
)
def test_visible_panels(role, panels):
    assert visible_panels(role) == panels


def test_developer_sees_everything():
    assert set(visible_panels(Role.DEVELOPER)) == set(Panel)


def test_default_panel():
    assert default_panel("nurse") is Panel.MEDICAL_RECORDS
    assert default_panel("ADMIN") is Panel.STAFF
    assert default_panel("Receptionist") is Panel.PATIENTS
    assert default_panel("Patient") is Panel.PATIENT_PORTAL
    assert default_panel("GP") is Panel.DASHBOARD


def test_require_panel():
    assert can_access("receptionist", Panel.APPOINTMENTS)
    require_panel("Admin", Panel.STAFF)
    with pytest.raises(PermissionDeniedError):
        require_panel("Patient", Panel.DASHBOARD)
    with pytest.raises(PermissionDeniedError):
        require_panel("Nurse", Panel.APPOINTMENTS)


def test_role_for_clinician():
    assert role_for_clinician(Clinician(title="GP", speciality="General Practice")) is Role.GP
    assert role_for_clinician(Clinician(title="Practice Nurse")) is Role.NURSE
    assert role_for_clinician(Clinician(title="Consultant", speciality="Cardiology Consultant")) is Role.SPECIALIST
    assert role_for_clinician(Clinician(title="Consultant", speciality="Cardiology")) is Role.GP
    assert role_for_clinician(Clinician(title="Dr", speciality="Dermatology Specialist")) is Role.SPECIALIST


def test_role_for_staff():
    assert role_for_staff(Staff(staff_id="ST001", role="Receptionist")) is Role.RECEPTIONIST
    assert role_for_staff(Staff(staff_id="ST002", role="Practice Manager")) is Role.ADMIN
    assert role_for_staff(Staff(staff_id="ST003", role="Administrator")) is Role.ADMIN
    assert role_for_staff(Staff(staff_id="ST004", role="Healthcare Assistant")) is Role.STAFF
    assert role_for_staff(Staff(staff_id="DEV001", role="")) is Role.DEVELOPER
