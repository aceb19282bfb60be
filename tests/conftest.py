"""
Shared pytest fixtures.

The environment is pointed at a throw-away accounts DB and data dir
before any `hms` module is imported (config is read at import time).
"""
import os
import tempfile
from pathlib import Path

import pytest

_TMP = Path(tempfile.mkdtemp(prefix="hms-tests-"))
os.environ["HMS_DATABASE_URL"] = f"sqlite:///{_TMP / 'accounts.sqlite'}"
os.environ["HMS_DATA_DIR"] = str(_TMP / "data")
os.environ["HMS_BCRYPT_ROUNDS"] = "4"
os.environ["HMS_ALLOW_ROLE_LOGIN"] = "true"
os.environ["HMS_DEFAULT_PASSWORD"] = "12345"
os.environ["JWT_SECRET"] = "test-secret"

from fastapi.testclient import TestClient  # noqa: E402

from hms.api_main import app, get_clinic  # noqa: E402
from hms.auth_service import ensure_accounts  # noqa: E402
from hms.clinic import Clinic  # noqa: E402
from hms.db import Base, engine, init_db  # noqa: E402
from hms.seed import seed_base  # noqa: E402


# ============================================================================
# DATA FIXTURES
# ============================================================================


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Temp directory holding the sample CSV files."""
    path = tmp_path / "data"
    seed_base(path)
    return path


@pytest.fixture
def clinic(data_dir: Path) -> Clinic:
    return Clinic.open(data_dir)


# ============================================================================
# ACCOUNTS DB
# ============================================================================


@pytest.fixture
def accounts_db():
    """Fresh accounts table for each test."""
    from hms import auth_models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    init_db()
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def accounts(clinic: Clinic, accounts_db) -> Clinic:
    """Clinic whose identities all have an account with the default password."""
    ensure_accounts(clinic)
    return clinic


# ============================================================================
# API CLIENT
# ============================================================================


@pytest.fixture
def client(accounts: Clinic):
    """
    TestClient bound to the temp clinic.
    Not used as a context manager, so the startup hook does not run.
    """
    app.dependency_overrides[get_clinic] = lambda: accounts
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient):
    """Log in and return the Authorization header for `identifier`."""

    def _login(identifier: str, password: str = "12345") -> dict:
        r = client.post("/api/auth/login", data={"username": identifier, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _login
