import logging

from .auth import AuthError, AuthService
from .config import get_settings
from .db import SessionLocal, engine, Base
from .logging_setup import setup_logging
from . import models  # noqa: F401  (registers tables)

logger = logging.getLogger(__name__)


def seed_hr_user(auth: AuthService, email: str | None, password: str | None) -> bool:
    """Create the first HR account; returns False when it already exists."""
    if not email or not password:
        raise ValueError("SEED_HR_EMAIL and SEED_HR_PASSWORD must be set")
    try:
        session = auth.sign_up(email, password)
    except AuthError:
        logger.warning("HR account %s already exists, skipping insert", email)
        return False
    if session is not None:
        auth.sign_out(session.token)
    logger.info("HR account %s inserted", email)
    return True


def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    # Ensure tables exist
    Base.metadata.create_all(bind=engine)
    auth = AuthService(
        SessionLocal,
        require_email_confirmation=False,
        password_hash_iterations=settings.password_hash_iterations,
    )
    seed_hr_user(auth, settings.seed_hr_email, settings.seed_hr_password)


if __name__ == "__main__":
    main()
