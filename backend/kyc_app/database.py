"""
Database Engine & Session Management
SQLAlchemy engine for the KYC store plus the FastAPI session dependency.
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from kyc_app.config import get_settings

settings = get_settings()


def sqlite_file_path(database_url: str) -> Optional[str]:
    """On-disk path of a SQLite URL; None for in-memory or non-SQLite databases."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return url.database


engine_kwargs = {"echo": settings.DEBUG}
if settings.DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}  # sync routes run on a thread pool
    db_path = sqlite_file_path(settings.DATABASE_URL)
    if db_path:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
else:
    # Server databases: drop dead pooled connections before a KYC write uses them
    engine_kwargs["pool_pre_ping"] = True

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create kyc_records and pan_fingerprints (the latter carries the PAN uniqueness constraint)."""
    from kyc_app.models import kyc as _kyc_model   # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
