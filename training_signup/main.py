# training_signup/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timezone, tzinfo
from typing import Any, Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import config, crud
from .auth import (
    AuthError,
    AuthService,
    AuthSession,
    auth_error_message,
    get_auth_service,
    require_session,
)
from .config import get_settings
from .db import Base, engine, get_db
from .export import MEDIA_TYPE, build_csv_document, export_filename
from .listing import (
    LOAD_FAILURE_DESCRIPTION,
    LOAD_FAILURE_TITLE,
    ListingUnavailableError,
    RegistrationListing,
    fetch_registrations,
)
from .logging_setup import setup_logging
from .schemas import (
    DEPARTMENTS,
    FAMILIARITY_LEVELS,
    TRAINING_DAYS,
    DepartmentFilter,
    EventInfo,
    RegistrationOut,
    RegistrationPage,
    SessionOut,
    SignUpOut,
    TrainingDayFilter,
)
from .submission import SubmissionFlow, SubmissionState
from .validation import CredentialsValidationError, validate_credentials

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist (dev only; use migrations in prod)
    Base.metadata.create_all(bind=engine)
    yield


# ---------------- FASTAPI APP ----------------
APP = FastAPI(title="Training Signup Backend", version="0.1.0", lifespan=lifespan)

APP.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Export-Count"],
)

INVALID_FORM_DETAIL = "Verifique os campos destacados."


def _field_errors(errors: Dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": INVALID_FORM_DETAIL, "errors": errors},
    )


def _session_out(session: AuthSession) -> SessionOut:
    return SessionOut(access_token=session.token, email=session.email, expires_at=session.expires_at)


def _export_tz() -> tzinfo:
    try:
        return ZoneInfo(settings.export_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown EXPORT_TIMEZONE %r, exporting in UTC", settings.export_timezone)
        return timezone.utc


# ---------------- HEALTH ----------------
@APP.get("/api/health/db")
def health_db(db: Session = Depends(get_db)):
    try:
        val = db.execute(text("SELECT 1")).scalar_one()
        return {"db": "ok", "result": val}
    except Exception as e:
        logger.exception("Database health check failed")
        raise HTTPException(
            status_code=503, detail=f"db error: {e.__class__.__name__}"
        )


@APP.get("/api/health")
def health():
    return {"ok": True}


# ---------------- EVENT ----------------
@APP.get("/api/event", response_model=EventInfo)
def event_info():
    return EventInfo(
        title=config.EVENT_TITLE,
        description=config.EVENT_DESCRIPTION,
        dates=config.EVENT_DATES_LABEL,
        start_time=config.EVENT_START_TIME,
        room=config.EVENT_ROOM,
        departments=list(DEPARTMENTS),
        familiarity_levels=list(FAMILIARITY_LEVELS),
        training_days=list(TRAINING_DAYS),
    )


# ---------------- PUBLIC REGISTRATION ----------------
@APP.post("/api/registrations", status_code=status.HTTP_201_CREATED)
def submit_registration(data: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    flow = SubmissionFlow(lambda payload: crud.insert_registration(db, payload))
    state = flow.submit(data)

    if state is SubmissionState.SUBMITTED:
        return {
            "ok": True,
            "title": flow.notification.title,
            "message": flow.notification.description,
            "registration": RegistrationOut.model_validate(flow.record).model_dump(mode="json"),
        }
    if state is SubmissionState.EDITING_WITH_ERROR:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": f"{flow.notification.title}. {flow.notification.description}"},
        )
    return _field_errors(flow.field_errors)


# ---------------- HR AREA ----------------
def _load_listing(
    db: Session,
    auth: AuthService,
    session: AuthSession,
    search: str,
    department: str,
    training_day: str,
) -> RegistrationListing:
    listing = RegistrationListing(lambda: fetch_registrations(db), auth, session)
    try:
        listing.refresh()
    except ListingUnavailableError:
        listing.close()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{LOAD_FAILURE_TITLE}. {LOAD_FAILURE_DESCRIPTION}",
        )
    listing.set_filters(search=search, department=department, training_day=training_day)
    return listing


@APP.get("/api/registrations", response_model=RegistrationPage)
def list_registrations(
    search: str = Query(""),
    department: DepartmentFilter = Query("all"),
    training_day: TrainingDayFilter = Query("all"),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    session: AuthSession = Depends(require_session),
):
    with _load_listing(db, auth, session, search, department, training_day) as listing:
        return RegistrationPage(total=len(listing.rows), count=listing.count, items=listing.visible)


@APP.get("/api/registrations/export")
def export_registrations(
    search: str = Query(""),
    department: DepartmentFilter = Query("all"),
    training_day: TrainingDayFilter = Query("all"),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    session: AuthSession = Depends(require_session),
):
    with _load_listing(db, auth, session, search, department, training_day) as listing:
        rows = listing.visible

    filename = export_filename()
    logger.info("CSV export by %s: %d rows -> %s", session.email, len(rows), filename)
    return Response(
        content=build_csv_document(rows, _export_tz()),
        media_type=MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Export-Count": str(len(rows)),
        },
    )


# ---------------- AUTH ----------------
@APP.post("/api/auth/sign-up", response_model=SignUpOut)
def sign_up(data: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    try:
        creds = validate_credentials(data)
    except CredentialsValidationError as e:
        return _field_errors(e.errors)
    try:
        session = auth.sign_up(creds.email, creds.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=auth_error_message(e))
    return SignUpOut(
        ok=True,
        email=creds.email,
        confirmation_required=session is None,
        session=_session_out(session) if session else None,
    )


@APP.post("/api/auth/sign-in", response_model=SessionOut)
def sign_in(data: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    try:
        creds = validate_credentials(data)
    except CredentialsValidationError as e:
        return _field_errors(e.errors)
    try:
        session = auth.sign_in(creds.email, creds.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=auth_error_message(e))
    return _session_out(session)


@APP.post("/api/auth/sign-out")
def sign_out(
    session: AuthSession = Depends(require_session),
    auth: AuthService = Depends(get_auth_service),
):
    auth.sign_out(session.token)
    return {"ok": True}


@APP.get("/api/auth/session", response_model=SessionOut)
def current_session(session: AuthSession = Depends(require_session)):
    return _session_out(session)


@APP.get("/api/auth/confirm")
def confirm_email(token: str = Query(...), auth: AuthService = Depends(get_auth_service)):
    try:
        email = auth.confirm_email(token)
    except AuthError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Link de confirmação inválido.")
    return {"ok": True, "email": email}
