from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from hms.db import Base


class Account(Base):
    """
    Login account of one identity.
    - username = canonical identity ID (P001, C001, ST001, DEV001, ADMIN, ...)
    - password_hash with bcrypt (passlib)
    """
    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(String(50), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"Account({self.username}, active={self.is_active})"
