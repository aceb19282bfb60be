from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# CSV files live here (patients.csv, clinicians.csv, ...)
DATA_DIR = Path(os.getenv("HMS_DATA_DIR", str(PROJECT_ROOT / "data")))

# Prescription files, referral letters and the referral report
OUTPUT_DIR = Path(os.getenv("HMS_OUTPUT_DIR", str(DATA_DIR / "output")))

# Accounts DB: SQLite file in the project root unless overridden
DATABASE_URL = os.getenv("HMS_DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'hms_accounts.sqlite'}")

# Override in production
JWT_SECRET = os.getenv("JWT_SECRET", "CHANGE_ME_DEV_SECRET")
JWT_ALG = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

# Initial password given to every account created by ensure_accounts()
DEFAULT_PASSWORD = os.getenv("HMS_DEFAULT_PASSWORD", "12345")
BCRYPT_ROUNDS = int(os.getenv("HMS_BCRYPT_ROUNDS", "12"))

# Typing a role name ("admin", "receptionist", ...) logs in as a built-in user of that role
ALLOW_ROLE_LOGIN = _flag("HMS_ALLOW_ROLE_LOGIN", "true")

LOG_LEVEL = os.getenv("HMS_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for CLI / API processes."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
