from __future__ import annotations

import logging

from sqlalchemy import select

from hms import config
from hms.auth_models import Account
from hms.auth_security import hash_password, verify_password
from hms.clinic import Clinic
from hms.db import db_session
from hms.login import Identity, all_identities, resolve_identity

logger = logging.getLogger(__name__)


def create_account(username: str, password: str) -> str:
    username = username.strip()
    if not username or not password:
        raise ValueError("Username and password are required.")

    with db_session() as s:
        if s.get(Account, username) is not None:
            raise ValueError("Username already registered.")

        a = Account(username=username, password_hash=hash_password(password), is_active=True)
        s.add(a)
        s.flush()
        return a.username


def get_account(username: str) -> Account | None:
    with db_session() as s:
        return s.get(Account, username.strip())


def set_password(username: str, password: str) -> bool:
    if not password:
        raise ValueError("Password is required.")
    with db_session() as s:
        a = s.get(Account, username.strip())
        if a is None:
            return False
        a.password_hash = hash_password(password)
        return True


def set_active(username: str, active: bool) -> bool:
    with db_session() as s:
        a = s.get(Account, username.strip())
        if a is None:
            return False
        a.is_active = active
        return True


def delete_account(username: str) -> bool:
    with db_session() as s:
        a = s.get(Account, username.strip())
        if a is None:
            return False
        s.delete(a)
        return True


def ensure_accounts(clinic: Clinic, default_password: str | None = None) -> int:
    """
    Create the missing accounts (idempotent).
    Every identity found in the CSV data gets `default_password`.
    """
    password = default_password or config.DEFAULT_PASSWORD
    created = 0
    with db_session() as s:
        existing = set(s.scalars(select(Account.username)))
        for identity in all_identities(clinic):
            if identity.user_id in existing:
                continue
            s.add(Account(username=identity.user_id, password_hash=hash_password(password), is_active=True))
            existing.add(identity.user_id)
            created += 1
    if created:
        logger.info("Created %d login account(s)", created)
    return created


def authenticate(clinic: Clinic, identifier: str, password: str) -> Identity | None:
    identity = resolve_identity(clinic, identifier)
    if identity is None:
        return None

    with db_session() as s:
        a = s.get(Account, identity.user_id)
        if not a or not a.is_active:
            logger.info("No active account for %s", identity.user_id)
            return None
        if not verify_password(password, a.password_hash):
            logger.info("Wrong password for %s", identity.user_id)
            return None
    return identity
