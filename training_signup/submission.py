"""Public registration submission flow.

A ``SubmissionFlow`` models one form on screen::

    editing --submit--> submitting --ok--> submitted (terminal)
                                   \\-fail--> editing_with_error --submit--> ...

Invalid input never leaves ``editing`` and never reaches the store.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .schemas import RegistrationIn
from .validation import RegistrationValidationError, validate_registration

logger = logging.getLogger(__name__)

SUCCESS_TITLE = "Inscrição realizada!"
SUCCESS_DESCRIPTION = "Você receberá mais informações por e-mail."
FAILURE_TITLE = "Erro ao realizar inscrição"
FAILURE_DESCRIPTION = "Por favor, tente novamente."


class SubmissionState(str, enum.Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    EDITING_WITH_ERROR = "editing_with_error"


class SubmissionStateError(RuntimeError):
    """submit() called while a submission is in flight or already done."""


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"  # "default" | "destructive"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def build_insert_payload(reg: RegistrationIn) -> Dict[str, Any]:
    """Column values for one ``training_registrations`` row."""
    return {
        "full_name": reg.full_name,
        "corporate_email": reg.corporate_email,
        "department": reg.department,
        "familiarity": reg.familiarity,
        "needs_accessibility": reg.needs_accessibility,
        "accessibility_details": _blank_to_none(reg.accessibility_details) if reg.needs_accessibility else None,
        "observations": _blank_to_none(reg.observations),
        "training_day": reg.training_day,
    }


class SubmissionFlow:
    def __init__(self, insert: Callable[[Dict[str, Any]], Any]):
        self._insert = insert
        self.state = SubmissionState.EDITING
        self.field_errors: Dict[str, str] = {}
        self.notification: Optional[Notification] = None
        self.record: Any = None

    @property
    def accepts_input(self) -> bool:
        return self.state in (SubmissionState.EDITING, SubmissionState.EDITING_WITH_ERROR)

    def submit(self, data: Mapping[str, Any]) -> SubmissionState:
        if not self.accepts_input:
            raise SubmissionStateError(f"cannot submit while {self.state.value}")

        self.notification = None
        try:
            reg = validate_registration(data)
        except RegistrationValidationError as e:
            self.field_errors = e.errors
            self.state = SubmissionState.EDITING
            return self.state

        self.field_errors = {}
        self.state = SubmissionState.SUBMITTING
        payload = build_insert_payload(reg)
        try:
            self.record = self._insert(payload)
        except Exception:
            # detail goes to the log only; the user gets the generic retry message
            logger.exception("Error submitting registration for %s", reg.corporate_email)
            self.notification = Notification(FAILURE_TITLE, FAILURE_DESCRIPTION, "destructive")
            self.state = SubmissionState.EDITING_WITH_ERROR
            return self.state

        logger.info(
            "Registration stored: email=%s department=%s day=%s",
            reg.corporate_email, reg.department, reg.training_day,
        )
        self.notification = Notification(SUCCESS_TITLE, SUCCESS_DESCRIPTION)
        self.state = SubmissionState.SUBMITTED
        return self.state
