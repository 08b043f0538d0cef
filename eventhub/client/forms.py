"""
Form plumbing shared by the auth flows: schema validation mapped to
per-field i18n keys, toasts, and the single-submit guard.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from eventhub.client.api import ApiClient
from eventhub.client.routing import Navigator
from eventhub.i18n import Translator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# field name (as sent on the wire) -> i18n key
FieldErrors = Dict[str, str]

FORM_ERROR_FIELD = "__form__"

_ERROR_KEYS = {
    "required": "validation.required",
    "missing": "validation.required",
    "password_too_short": "validation.password.min",
    "password_strength": "validation.password.strength",
    "password_mismatch": "validation.password.mismatch",
    "literal_error": "validation.role.invalid",
}


def _error_key(field: str, error_type: str) -> str:
    if error_type in _ERROR_KEYS:
        return _ERROR_KEYS[error_type]
    if field == "email":
        return "validation.email.invalid"
    return "validation.invalid"


def validate_form(model: Type[M], data: Mapping[str, Any]) -> Tuple[Optional[M], FieldErrors]:
    """Validate ``data`` with ``model``; returns the model or the first error key per field."""
    try:
        return model.model_validate(dict(data)), {}
    except ValidationError as e:
        errors: FieldErrors = {}
        for error in e.errors():
            if error["loc"]:
                field = str(error["loc"][0])
            elif error["type"] == "password_mismatch":
                field = "confirmPassword"
            else:
                field = FORM_ERROR_FIELD
            errors.setdefault(field, _error_key(field, error["type"]))
        return None, errors


@dataclass(frozen=True)
class Toast:
    title: str
    description: str = ""
    variant: str = "default"  # default | destructive


class Toaster:
    def __init__(self):
        self.toasts: List[Toast] = []

    def toast(self, title: str, description: str = "", variant: str = "default") -> Toast:
        toast = Toast(title=title, description=description, variant=variant)
        self.toasts.append(toast)
        return toast

    @property
    def last(self) -> Optional[Toast]:
        return self.toasts[-1] if self.toasts else None


class SubmitResult(str, Enum):
    SUCCESS = "success"
    INVALID = "invalid"
    FAILED = "failed"
    BUSY = "busy"


class InvalidTransition(RuntimeError):
    """An action was attempted from a state that does not allow it."""


class FormController:
    """Base for views with one submit action that must not run twice at once."""

    def __init__(self, api: ApiClient, navigator: Navigator, toaster: Toaster, translator: Translator):
        self.api = api
        self.navigator = navigator
        self.toaster = toaster
        self.translator = translator
        self.errors: FieldErrors = {}
        self._in_flight = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self._in_flight.locked()

    def error_messages(self) -> Dict[str, str]:
        return {field: self.translator.t(key) for field, key in self.errors.items()}

    def _begin(self) -> bool:
        # Non-blocking: a second submit while one is pending is ignored
        return self._in_flight.acquire(blocking=False)

    def _end(self) -> None:
        self._in_flight.release()

    def _toast_success(self, prefix: str) -> None:
        t = self.translator.t
        self.toaster.toast(t(f"{prefix}.success.title"), t(f"{prefix}.success.description"))

    def _toast_error(self, prefix: str, description: Optional[str] = None) -> None:
        t = self.translator.t
        self.toaster.toast(
            t(f"{prefix}.error.title"),
            description or t(f"{prefix}.error.description"),
            variant="destructive",
        )
