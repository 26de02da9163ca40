"""HR area authentication.

Provides the ``AuthService`` (sign-up, sign-in, sign-out, session lookup and
session-change notifications), the ``require_session`` gate used by the HR
endpoints, and the mapping from provider error text to user messages.
"""

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from . import crud
from .config import get_settings
from .passwords import DEFAULT_ITERATIONS, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid login credentials"
USER_ALREADY_REGISTERED = "User already registered"
EMAIL_NOT_CONFIRMED = "Email not confirmed"
INVALID_CONFIRMATION = "Invalid or expired confirmation token"

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

GENERIC_AUTH_MESSAGE = "Ocorreu um erro. Tente novamente."

_USER_MESSAGES = (
    (INVALID_CREDENTIALS, "E-mail ou senha incorretos."),
    (USER_ALREADY_REGISTERED, "Este e-mail já está cadastrado. Faça login."),
    (EMAIL_NOT_CONFIRMED, "Confirme seu e-mail antes de fazer login."),
)


class AuthError(Exception):
    """Raised by AuthService; the message carries the provider error text."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def auth_error_message(exc: BaseException) -> str:
    """User-facing message for an auth failure, matched on the error text."""
    text = str(getattr(exc, "message", None) or exc)
    for needle, message in _USER_MESSAGES:
        if needle in text:
            return message
    return GENERIC_AUTH_MESSAGE


@dataclass(frozen=True)
class AuthSession:
    token: str
    user_id: int
    email: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class AuthStateChange:
    event: str
    session: AuthSession


Listener = Callable[[AuthStateChange], None]


class Subscription:
    """Handle returned by ``on_auth_state_change``; pair it with ``unsubscribe``."""

    def __init__(self, service: "AuthService", callback: Listener):
        self._service = service
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._service._remove_listener(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        session_ttl_seconds: int = 8 * 60 * 60,
        require_email_confirmation: bool = False,
        password_hash_iterations: int = DEFAULT_ITERATIONS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._ttl = timedelta(seconds=session_ttl_seconds)
        self.require_email_confirmation = require_email_confirmation
        self._iterations = password_hash_iterations
        self._clock = clock
        self._sessions: Dict[str, AuthSession] = {}
        self._listeners: List[Subscription] = []
        self._lock = threading.Lock()

    # ---------------- SUBSCRIPTIONS ----------------
    def on_auth_state_change(self, callback: Listener) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._listeners.append(sub)
        return sub

    def _remove_listener(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._listeners:
                self._listeners.remove(sub)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _emit(self, event: str, session: AuthSession) -> None:
        with self._lock:
            listeners = list(self._listeners)
        change = AuthStateChange(event, session)
        for sub in listeners:
            try:
                sub.callback(change)
            except Exception:
                logger.exception("Auth listener failed on %s", event)

    # ---------------- ACCOUNTS ----------------
    def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        """Create an HR account.

        Returns a signed-in session, or None when the address must be
        confirmed first.

        Raises:
            AuthError: the address already has an account
        """
        db: Session = self._session_factory()
        try:
            if crud.get_user_by_email(db, email):
                raise AuthError(USER_ALREADY_REGISTERED)
            token = secrets.token_urlsafe(32) if self.require_email_confirmation else None
            try:
                user = crud.create_user(
                    db,
                    email=email,
                    password_hash=hash_password(password, self._iterations),
                    email_confirmed=not self.require_email_confirmation,
                    confirmation_token=token,
                )
            except IntegrityError as e:
                # a concurrent sign-up for the same address won the insert
                raise AuthError(USER_ALREADY_REGISTERED) from e
            user_id, user_email = user.id, user.email
        finally:
            db.close()

        if token:
            # no mail delivery here; the link is only logged
            logger.info("HR account created for %s, confirm at /api/auth/confirm?token=%s", user_email, token)
            return None
        logger.info("HR account created for %s", user_email)
        return self._start_session(user_id, user_email)

    def confirm_email(self, token: str) -> str:
        db: Session = self._session_factory()
        try:
            user = crud.get_user_by_confirmation_token(db, token) if token else None
            if user is None:
                raise AuthError(INVALID_CONFIRMATION)
            crud.confirm_user(db, user)
            logger.info("HR account confirmed: %s", user.email)
            return user.email
        finally:
            db.close()

    # ---------------- SESSIONS ----------------
    def sign_in(self, email: str, password: str) -> AuthSession:
        db: Session = self._session_factory()
        try:
            user = crud.get_user_by_email(db, email)
            if user is None or not verify_password(password, user.password_hash):
                logger.info("Rejected sign-in for %s", email)
                raise AuthError(INVALID_CREDENTIALS)
            if not user.email_confirmed:
                raise AuthError(EMAIL_NOT_CONFIRMED)
            user_id, user_email = user.id, user.email
        finally:
            db.close()
        return self._start_session(user_id, user_email)

    def _start_session(self, user_id: int, email: str) -> AuthSession:
        now = self._clock()
        session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            email=email,
            expires_at=now + self._ttl,
        )
        with self._lock:
            expired = [s for s in self._sessions.values() if s.is_expired(now)]
            for s in expired:
                del self._sessions[s.token]
            self._sessions[session.token] = session
        for s in expired:
            logger.info("HR session expired: %s", s.email)
            self._emit(SIGNED_OUT, s)
        logger.info("HR sign-in: %s", email)
        self._emit(SIGNED_IN, session)
        return session

    @property
    def active_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get_session(self, token: Optional[str]) -> Optional[AuthSession]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if not session.is_expired(self._clock()):
                return session
            del self._sessions[token]
        logger.info("HR session expired: %s", session.email)
        self._emit(SIGNED_OUT, session)
        return None

    def sign_out(self, token: str) -> bool:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is None:
            return False
        logger.info("HR sign-out: %s", session.email)
        self._emit(SIGNED_OUT, session)
        return True


# ---------------- FASTAPI WIRING ----------------
_service: Optional[AuthService] = None
_service_lock = threading.Lock()


def get_auth_service() -> AuthService:
    global _service
    with _service_lock:
        if _service is None:
            from .db import SessionLocal

            settings = get_settings()
            _service = AuthService(
                SessionLocal,
                session_ttl_seconds=settings.session_ttl_seconds,
                require_email_confirmation=settings.require_email_confirmation,
                password_hash_iterations=settings.password_hash_iterations,
            )
        return _service


security = HTTPBearer(auto_error=False)


def require_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthService = Depends(get_auth_service),
) -> AuthSession:
    """Gate for the HR area: a live session or 401."""
    session = auth.get_session(credentials.credentials if credentials else None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
