"""HR listing: one fetch, then filters re-derived from the in-memory copy."""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from . import crud
from .auth import SIGNED_OUT, AuthService, AuthSession, AuthStateChange
from .schemas import RegistrationOut

logger = logging.getLogger(__name__)

ALL = "all"

LOAD_FAILURE_TITLE = "Erro ao carregar inscrições"
LOAD_FAILURE_DESCRIPTION = "Por favor, recarregue a página."


class ListingUnavailableError(RuntimeError):
    """The registration set could not be fetched."""


@dataclass(frozen=True)
class RegistrationFilters:
    search: str = ""
    department: str = ALL
    training_day: str = ALL


def matches_search(row: RegistrationOut, search: str) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in row.full_name.lower() or needle in row.corporate_email.lower()


def matches_department(row: RegistrationOut, department: str) -> bool:
    return department == ALL or row.department == department


def matches_training_day(row: RegistrationOut, training_day: str) -> bool:
    return training_day == ALL or row.training_day == training_day


def derive_visible(rows: Iterable[RegistrationOut], filters: RegistrationFilters) -> List[RegistrationOut]:
    """Rows passing every active filter, in their original order."""
    return [
        r for r in rows
        if matches_search(r, filters.search)
        and matches_department(r, filters.department)
        and matches_training_day(r, filters.training_day)
    ]


def fetch_registrations(db: Session) -> List[RegistrationOut]:
    return [RegistrationOut.model_validate(r) for r in crud.list_registrations(db)]


class RegistrationListing:
    """State behind the HR registrations page.

    Holds the fetched rows and the current filters, follows the viewer's
    session and drops everything when that session ends. Use it as a context
    manager (or call ``close``) so the session listener is always released.
    """

    def __init__(
        self,
        fetch: Callable[[], Sequence[RegistrationOut]],
        auth: AuthService,
        session: AuthSession,
        on_session_lost: Optional[Callable[[], None]] = None,
    ):
        self._fetch = fetch
        self._session = session
        self._on_session_lost = on_session_lost
        self._rows: List[RegistrationOut] = []
        self._visible: List[RegistrationOut] = []
        self.filters = RegistrationFilters()
        self.loaded = False
        self.closed = False
        self._subscription = auth.on_auth_state_change(self._session_changed)

    def __enter__(self) -> "RegistrationListing":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True
        self._subscription.unsubscribe()

    @property
    def rows(self) -> List[RegistrationOut]:
        return list(self._rows)

    @property
    def visible(self) -> List[RegistrationOut]:
        return list(self._visible)

    @property
    def count(self) -> int:
        return len(self._visible)

    def refresh(self) -> List[RegistrationOut]:
        if self.closed:
            raise ListingUnavailableError("listing is closed")
        try:
            rows = list(self._fetch())
        except Exception as e:
            logger.exception("Error fetching registrations")
            raise ListingUnavailableError(LOAD_FAILURE_TITLE) from e

        if self.closed:
            # view went away while the read was in flight
            logger.debug("Discarding %d registrations fetched after close", len(rows))
            return []
        self._rows = rows
        self.loaded = True
        self._rederive()
        return self.visible

    def set_filters(self, search=None, department=None, training_day=None) -> List[RegistrationOut]:
        changes = {
            k: v for k, v in
            (("search", search), ("department", department), ("training_day", training_day))
            if v is not None
        }
        self.filters = replace(self.filters, **changes)
        self._rederive()
        return self.visible

    def _rederive(self) -> None:
        self._visible = derive_visible(self._rows, self.filters)

    def _session_changed(self, change: AuthStateChange) -> None:
        if change.event != SIGNED_OUT or change.session.token != self._session.token:
            return
        self._rows = []
        self._visible = []
        self.loaded = False
        if self._on_session_lost is not None:
            self._on_session_lost()
