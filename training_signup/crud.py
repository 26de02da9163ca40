# training_signup/crud.py
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import HrUser, TrainingRegistration


# ---------------- REGISTRATIONS ----------------
def insert_registration(db: Session, payload: Dict[str, Any]) -> TrainingRegistration:
    row = TrainingRegistration(**payload)
    db.add(row)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    return row


def list_registrations(db: Session) -> List[TrainingRegistration]:
    """All registrations, newest first."""
    stmt = select(TrainingRegistration).order_by(
        TrainingRegistration.created_at.desc(),
        TrainingRegistration.id.desc(),
    )
    return list(db.execute(stmt).scalars().all())


# ---------------- HR USERS ----------------
def get_user_by_email(db: Session, email: str):
    return db.execute(select(HrUser).where(HrUser.email == email.lower())).scalar_one_or_none()


def get_user_by_confirmation_token(db: Session, token: str):
    return db.execute(select(HrUser).where(HrUser.confirmation_token == token)).scalar_one_or_none()


def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    email_confirmed: bool,
    confirmation_token: str | None = None,
) -> HrUser:
    row = HrUser(
        email=email.lower(),
        password_hash=password_hash,
        email_confirmed=email_confirmed,
        confirmation_token=confirmation_token,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(row)
    return row


def confirm_user(db: Session, user: HrUser) -> HrUser:
    user.email_confirmed = True
    user.confirmation_token = None
    db.commit()
    db.refresh(user)
    return user
