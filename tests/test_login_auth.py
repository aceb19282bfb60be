import pytest

from hms.auth_security import create_access_token, decode_token, get_subject, hash_password, verify_password
from hms.auth_service import authenticate, create_account, ensure_accounts, get_account, set_active, set_password
from hms.login import all_identities, identity_by_id, resolve_identity
from hms.models import Patient
from hms.roles import Panel, Role


# ============================================================================
# IDENTIFIER RESOLUTION
# ============================================================================


@pytest.mark.parametrize(
    "identifier, user_id, role",
    [
        ("P001", "P001", Role.PATIENT),
        ("john.doe@example.com", "P001", Role.PATIENT),
        ("jones", "P002", Role.PATIENT),
        ("c001", "C001", Role.GP),
        ("Robert Hughes", "C003", Role.SPECIALIST),
        ("e.wilson@riverside.nhs.uk", "C004", Role.NURSE),
        ("ST001", "ST001", Role.RECEPTIONIST),
        ("Helen Carter", "ST002", Role.ADMIN),
        ("DEV001", "DEV001", Role.DEVELOPER),
        ("receptionist", "RECEPTIONIST", Role.RECEPTIONIST),
        ("Admin", "ADMIN", Role.ADMIN),
        ("developer", "DEV001", Role.DEVELOPER),
    ],
)
def test_resolve_identity(clinic, identifier, user_id, role):
    identity = resolve_identity(clinic, identifier)

    assert identity is not None
    assert identity.user_id == user_id
    assert identity.role is role


def test_patient_identity_carries_patient_id(clinic):
    identity = resolve_identity(clinic, "P003")

    assert identity.patient_id == "P003"
    assert identity.name == "Ahmed Khan"
    assert identity.panels == (Panel.PATIENT_PORTAL,)
    assert identity.default_panel is Panel.PATIENT_PORTAL


def test_unknown_and_blank_identifiers(clinic):
    assert resolve_identity(clinic, "nobody") is None
    assert resolve_identity(clinic, "   ") is None
    assert resolve_identity(clinic, None) is None


def test_role_login_can_be_disabled(clinic):
    assert resolve_identity(clinic, "admin", allow_role_login=False) is None
    assert resolve_identity(clinic, "DEV001", allow_role_login=False).role is Role.DEVELOPER


def test_exact_id_beats_a_matching_last_name(clinic):
    clinic.patients.add(Patient(patient_id="P005", first_name="Eve", last_name="C001"))

    assert resolve_identity(clinic, "C001").user_id == "C001"
    assert resolve_identity(clinic, "c001").role is Role.GP


@pytest.mark.parametrize(
    "user_id, expected",
    [("P002", "P002"), ("C003", "C003"), ("ST004", "ST004"), ("DEV001", "DEV001"), ("GP", "GP"), ("RECEPTIONIST", "RECEPTIONIST")],
)
def test_identity_by_id(clinic, user_id, expected):
    assert identity_by_id(clinic, user_id).user_id == expected


def test_identity_by_id_ignores_names_and_emails(clinic):
    assert identity_by_id(clinic, "jones") is None
    assert identity_by_id(clinic, "john.doe@example.com") is None
    assert identity_by_id(clinic, "Helen Carter") is None
    assert identity_by_id(clinic, "P999") is None
    assert identity_by_id(clinic, "GP", allow_role_login=False) is None


def test_all_identities(clinic):
    ids = [i.user_id for i in all_identities(clinic)]

    assert ids[:4] == ["P001", "P002", "P003", "P004"]
    assert "DEV001" in ids and "RECEPTIONIST" in ids
    assert len(ids) == len(set(ids))
    assert "GP" not in [i.user_id for i in all_identities(clinic, allow_role_login=False)]


# ============================================================================
# PASSWORDS & TOKENS
# ============================================================================


def test_password_hashing():
    h = hash_password("secret")

    assert h != "secret"
    assert verify_password("secret", h)
    assert not verify_password("wrong", h)


def test_token_claims():
    token = create_access_token("C001", extra={"role": "GP", "name": "David Smith"})
    payload = decode_token(token)

    assert payload["sub"] == "C001"
    assert payload["role"] == "GP"
    assert payload["exp"] > payload["iat"]
    assert get_subject(token) == "C001"
    assert get_subject("not-a-token") is None


# ============================================================================
# ACCOUNTS
# ============================================================================


def test_ensure_accounts_is_idempotent(clinic, accounts_db):
    created = ensure_accounts(clinic)

    assert created == len(list(all_identities(clinic)))
    assert ensure_accounts(clinic) == 0
    assert get_account("ST001").is_active is True
    assert get_account("P999") is None


def test_authenticate(accounts):
    identity = authenticate(accounts, "l.green@riverside.nhs.uk", "12345")

    assert identity.user_id == "ST001"
    assert authenticate(accounts, "ST001", "wrong") is None
    assert authenticate(accounts, "nobody", "12345") is None


def test_set_password_and_deactivate(accounts):
    assert set_password("P001", "new-pass") is True
    assert authenticate(accounts, "P001", "12345") is None
    assert authenticate(accounts, "P001", "new-pass").user_id == "P001"

    assert set_active("P001", False) is True
    assert authenticate(accounts, "P001", "new-pass") is None
    assert set_password("P999", "x") is False


def test_create_account_validation(accounts_db):
    assert create_account("X001", "pw") == "X001"
    with pytest.raises(ValueError):
        create_account("X001", "pw")
    with pytest.raises(ValueError):
        create_account("  ", "pw")
