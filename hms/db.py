from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from . import config

# Only login accounts live in the DB: clinical records stay in the CSV files
DATABASE_URL = config.DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    echo=False,              # set True to log SQL
    future=True,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
    expire_on_commit=False
)


class Base(DeclarativeBase):
    """Base ORM for all models."""
    pass


def init_db() -> None:
    """Create tables if they do not exist."""
    from . import auth_models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session() -> Iterator[Session]:
    """
    Session context manager:
    - commit when the block succeeds
    - rollback on exceptions
    - always close
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
