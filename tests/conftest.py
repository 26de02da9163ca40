"""Shared fixtures.

Provides:
- SQLite in-memory engine shared by every session of a test
- AuthService bound to that engine (cheap password hashing)
- FastAPI TestClient with get_db / get_auth_service overridden
- Helpers to build and insert registrations
"""

import os

# Must be set before training_signup.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from training_signup import models  # noqa: F401  (registers tables)
from training_signup.auth import AuthService, get_auth_service
from training_signup.db import Base, get_db
from training_signup.main import APP
from training_signup.schemas import RegistrationOut

HR_EMAIL = "rh@corp.com"
HR_PASSWORD = "segredo123"

BASE_TIME = datetime(2024, 12, 1, 13, 0, 0, tzinfo=timezone.utc)

VALID_FORM = {
    "full_name": "Ana Souza",
    "corporate_email": "ana@corp.com",
    "department": "TI",
    "familiarity": "Alto",
    "needs_accessibility": False,
    "training_day": "11/12",
}


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def auth_service(session_factory) -> AuthService:
    return AuthService(session_factory, password_hash_iterations=1000)


@pytest.fixture()
def client(session_factory, auth_service) -> Generator[TestClient, None, None]:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    APP.dependency_overrides[get_db] = override_get_db
    APP.dependency_overrides[get_auth_service] = lambda: auth_service
    yield TestClient(APP)
    APP.dependency_overrides.clear()


@pytest.fixture()
def hr_session(auth_service):
    return auth_service.sign_up(HR_EMAIL, HR_PASSWORD)


@pytest.fixture()
def auth_headers(hr_session):
    return {"Authorization": f"Bearer {hr_session.token}"}


def make_row(minutes: int = 0, **overrides) -> RegistrationOut:
    """A stored registration ``minutes`` after BASE_TIME."""
    data = {
        "id": str(uuid.uuid4()),
        "full_name": "Ana Souza",
        "corporate_email": "ana@corp.com",
        "department": "TI",
        "familiarity": "Alto",
        "needs_accessibility": False,
        "accessibility_details": None,
        "observations": None,
        "training_day": "11/12",
        "created_at": BASE_TIME + timedelta(minutes=minutes),
    }
    data.update(overrides)
    return RegistrationOut(**data)


def add_registration(db: Session, minutes: int = 0, **overrides) -> models.TrainingRegistration:
    row = models.TrainingRegistration(**make_row(minutes, **overrides).model_dump())
    db.add(row)
    db.commit()
    return row
