"""Shared fixtures: in-memory and SQLite-backed KYC services, and an API client.

Run: pytest tests/
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kyc_app.database import init_db
from kyc_app.services.field_cipher import FieldCipher
from kyc_app.services.kyc_service import KYCService
from kyc_app.services.repository import InMemoryKYCRepository, SQLKYCRepository

TEST_KEY = "test-encryption-key"


@pytest.fixture
def submission():
    """A valid front-end submission (camelCase keys, as the form posts them)."""
    return {
        "govID": "VALID12345",
        "kycAddress": "123 Main St",
        "kycDob": "1990-01-15",
        "pan": "ABCD1234EF",
    }


@pytest.fixture
def request_info():
    return {"ip": "10.0.0.7", "user_agent": "pytest-agent/1.0"}


@pytest.fixture
def cipher():
    return FieldCipher(TEST_KEY)


@pytest.fixture
def memory_repo():
    return InMemoryKYCRepository()


@pytest.fixture
def service(memory_repo, cipher):
    return KYCService(memory_repo, cipher)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    TestingSession = sessionmaker(autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def sql_repo(db_session):
    return SQLKYCRepository(db_session)


@pytest.fixture
def sql_service(sql_repo, cipher):
    return KYCService(sql_repo, cipher)


@pytest.fixture
def client(service):
    from kyc_app.main import app
    from kyc_app.routes.kyc import get_kyc_service

    app.dependency_overrides[get_kyc_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
