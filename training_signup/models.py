# training_signup/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrainingRegistration(Base):
    __tablename__ = "training_registrations"

    id = Column(String(36), primary_key=True, default=_new_id)
    full_name = Column(String(100), nullable=False)
    corporate_email = Column(String(255), nullable=False, index=True)
    department = Column(String(32), nullable=False)
    familiarity = Column(String(16), nullable=False)
    needs_accessibility = Column(Boolean, nullable=False, default=False)
    accessibility_details = Column(Text, nullable=True)  # null unless needs_accessibility
    observations = Column(String(500), nullable=True)
    training_day = Column(String(8), nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        index=True,
    )


class HrUser(Base):
    __tablename__ = "hr_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)  # pbkdf2_sha256$iter$salt$hash
    email_confirmed = Column(Boolean, nullable=False, default=False)
    confirmation_token = Column(String(64), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("email", name="uq_hr_users_email"),
    )
