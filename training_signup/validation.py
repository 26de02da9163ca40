"""Field-level validation for the public registration form and the HR auth form.

Every field is checked independently and all violations are reported at once,
keyed by field name, so a client can flag each invalid input together.
"""

import logging
from typing import Any, Dict, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .schemas import AuthCredentials, RegistrationIn

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# field -> {pydantic error type -> message}; "*" is the field's fallback
REGISTRATION_MESSAGES: Dict[str, Dict[str, str]] = {
    "full_name": {
        "string_too_short": "Nome deve ter pelo menos 3 caracteres",
        "string_too_long": "Nome muito longo",
        "*": "Nome deve ter pelo menos 3 caracteres",
    },
    "corporate_email": {
        "string_too_long": "E-mail muito longo",
        "*": "E-mail inválido",
    },
    "department": {"*": "Selecione um departamento"},
    "familiarity": {"*": "Selecione o nível de familiaridade"},
    "training_day": {"*": "Selecione o dia de participação"},
    "observations": {
        "string_too_long": "Observações muito longas",
        "*": "Observações inválidas",
    },
    "needs_accessibility": {"*": "Valor inválido"},
    "accessibility_details": {"*": "Detalhes de acessibilidade inválidos"},
}

CREDENTIAL_MESSAGES: Dict[str, Dict[str, str]] = {
    "email": {"*": "E-mail inválido"},
    "password": {"*": "Senha deve ter pelo menos 6 caracteres"},
}


class FieldValidationError(ValueError):
    """Input rejected; ``errors`` maps each invalid field to one message."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(", ".join(f"{k}: {v}" for k, v in self.errors.items()))


class RegistrationValidationError(FieldValidationError):
    pass


class CredentialsValidationError(FieldValidationError):
    pass


def collect_field_errors(exc: ValidationError, messages: Mapping[str, Mapping[str, str]]) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into ``{field: message}``.

    Only the first violation of each field is kept.
    """
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        field = str(loc[0])
        if field in errors:
            continue
        table = messages.get(field, {})
        errors[field] = table.get(err["type"]) or table.get("*") or "Valor inválido"
    return errors


def _validate(model: Type[M], data: Any, messages, error_cls: Type[FieldValidationError]) -> M:
    if not isinstance(data, Mapping):
        raise error_cls({"__root__": "Formulário inválido"})
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        errors = collect_field_errors(e, messages)
        logger.debug("%s rejected: %s", model.__name__, errors)
        raise error_cls(errors) from e


def validate_registration(data: Any) -> RegistrationIn:
    """Validate a raw registration form.

    Raises:
        RegistrationValidationError: one entry per invalid field
    """
    return _validate(RegistrationIn, data, REGISTRATION_MESSAGES, RegistrationValidationError)


def validate_credentials(data: Any) -> AuthCredentials:
    return _validate(AuthCredentials, data, CREDENTIAL_MESSAGES, CredentialsValidationError)
