"""
Identifier -> identity resolution used by the login screen.

An exact ID match (patient, clinician, staff, DEV001 or a built-in role ID)
always wins. Otherwise the typed identifier is probed against patients,
then clinicians, then staff, then literal role names, and the first match
wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from . import config
from .clinic import Clinic
from .models import Clinician, Patient, Staff
from .roles import DEVELOPER_ID, Panel, Role, default_panel, role_for_clinician, role_for_staff, visible_panels

logger = logging.getLogger(__name__)

# Built-in users reachable by typing the role name
ROLE_LOGINS = (Role.GP, Role.SPECIALIST, Role.NURSE, Role.ADMIN, Role.RECEPTIONIST)


@dataclass(frozen=True)
class Identity:
    user_id: str
    name: str
    role: Role
    patient_id: str | None = None
    clinician_id: str | None = None
    panels: tuple[Panel, ...] = field(default=())

    @property
    def default_panel(self) -> Panel:
        return default_panel(self.role)


def _identity(user_id: str, name: str, role: Role, **kw) -> Identity:
    return Identity(user_id=user_id, name=name, role=role, panels=tuple(visible_panels(role)), **kw)


def _eq(a: str | None, b: str) -> bool:
    return bool(a) and a.strip().lower() == b


def developer_identity() -> Identity:
    return _identity(DEVELOPER_ID, "Developer System", Role.DEVELOPER)


def patient_identity(p: Patient) -> Identity:
    return _identity(p.patient_id, p.full_name, Role.PATIENT, patient_id=p.patient_id)


def clinician_identity(c: Clinician) -> Identity:
    return _identity(c.clinician_id, c.full_name, role_for_clinician(c), clinician_id=c.clinician_id)


def staff_identity(s: Staff) -> Identity:
    return _identity(s.staff_id, s.full_name, role_for_staff(s))


def role_identity(role: Role) -> Identity:
    if role is Role.DEVELOPER:
        return developer_identity()
    return _identity(role.value.upper(), f"{role.value} (built-in)", role)


def identity_by_id(clinic: Clinic, user_id: str | None, allow_role_login: bool | None = None) -> Identity | None:
    """
    Identity whose user ID is exactly `user_id` (case-insensitive).
    Names and emails are never consulted, so a record cannot take over another
    user's ID by reusing it as a last name.
    """
    wanted = (user_id or "").strip().lower()
    if not wanted:
        return None
    if allow_role_login is None:
        allow_role_login = config.ALLOW_ROLE_LOGIN

    for p in clinic.patients.get_all():
        if _eq(p.patient_id, wanted):
            return patient_identity(p)
    for c in clinic.clinicians.get_all():
        if _eq(c.clinician_id, wanted):
            return clinician_identity(c)
    for s in clinic.staff.get_all():
        if _eq(s.staff_id, wanted):
            return staff_identity(s)
    if wanted == DEVELOPER_ID.lower():
        return developer_identity()
    if allow_role_login:
        for role in ROLE_LOGINS:
            if wanted == role.value.lower():
                return role_identity(role)
    return None


def resolve_identity(clinic: Clinic, identifier: str | None, allow_role_login: bool | None = None) -> Identity | None:
    """Map a typed identifier to an identity, or None when nothing matches."""
    wanted = (identifier or "").strip().lower()
    if not wanted:
        return None
    if allow_role_login is None:
        allow_role_login = config.ALLOW_ROLE_LOGIN

    by_id = identity_by_id(clinic, wanted, allow_role_login)
    if by_id is not None:
        return by_id

    for p in clinic.patients.get_all():
        if _eq(p.email, wanted) or _eq(p.last_name, wanted):
            return patient_identity(p)

    for c in clinic.clinicians.get_all():
        if _eq(c.email, wanted) or _eq(c.full_name, wanted):
            return clinician_identity(c)

    for s in clinic.staff.get_all():
        if _eq(s.email, wanted) or _eq(s.full_name, wanted):
            return staff_identity(s)

    if allow_role_login and wanted == Role.DEVELOPER.value.lower():
        return developer_identity()

    logger.info("Login identifier not recognised: %s", identifier)
    return None


def all_identities(clinic: Clinic, allow_role_login: bool | None = None) -> Iterator[Identity]:
    """Every identity that can log in (used to provision accounts)."""
    if allow_role_login is None:
        allow_role_login = config.ALLOW_ROLE_LOGIN
    for p in clinic.patients.get_all():
        yield patient_identity(p)
    for c in clinic.clinicians.get_all():
        yield clinician_identity(c)
    for s in clinic.staff.get_all():
        yield staff_identity(s)
    yield developer_identity()
    if allow_role_login:
        for role in ROLE_LOGINS:
            yield role_identity(role)
