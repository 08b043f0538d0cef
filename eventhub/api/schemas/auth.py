"""
Pydantic schemas for authentication endpoints.

The same models validate request bodies on the server and form input in
``eventhub.client.flows`` before anything is sent, so both sides enforce one
set of rules. Custom error types (``required``, ``password_too_short``,
``password_strength``, ``password_mismatch``) map onto i18n keys on the client.
"""
import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from eventhub.core.config import settings

Role = Literal["admin", "organizer", "attendee", "sponsor", "service_provider"]
SelfServiceRole = Literal["organizer", "attendee", "sponsor", "service_provider"]

_LETTER = re.compile(r"[A-Za-z؀-ۿ]")
_DIGIT = re.compile(r"\d")


def _require(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PydanticCustomError("required", "This field is required")
    return value


def _require_trimmed(value: Any) -> Any:
    value = _require(value)
    return value.strip() if isinstance(value, str) else value


# Passwords are never trimmed
RequiredStr = Annotated[str, BeforeValidator(_require)]
RequiredEmail = Annotated[EmailStr, BeforeValidator(_require_trimmed)]
RequiredName = Annotated[str, BeforeValidator(_require_trimmed)]


def check_password_strength(password: str) -> str:
    """Minimum length plus at least one letter and one digit."""
    if len(password) < settings.password_min_length:
        raise PydanticCustomError(
            "password_too_short",
            "Password must be at least {min_length} characters long",
            {"min_length": settings.password_min_length},
        )
    if not _LETTER.search(password) or not _DIGIT.search(password):
        raise PydanticCustomError(
            "password_strength",
            "Password must contain at least one letter and one number",
        )
    return password


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class LoginRequest(BaseModel):
    """Login request schema. ``username`` also accepts the account email."""
    username: RequiredName
    password: RequiredStr


class RegisterRequest(_CamelModel):
    """Self-service registration. ``admin`` is never accepted here."""
    email: RequiredEmail
    username: Annotated[RequiredName, Field(min_length=3, max_length=50)]
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password: RequiredStr
    role: SelfServiceRole = "attendee"

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class ForgotPasswordRequest(BaseModel):
    """Step one of the reset flow: the email to verify."""
    email: RequiredEmail


class _NewPasswordPair(_CamelModel):
    password: RequiredStr
    confirm_password: RequiredStr

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise PydanticCustomError("password_mismatch", "Passwords do not match")
        return self


class ResetPasswordRequest(_NewPasswordPair):
    """Reset using the token from an emailed link."""
    token: RequiredStr


class ResetPasswordDirectRequest(_NewPasswordPair):
    """Step two of the reset flow. The email is re-verified by the server."""
    email: RequiredEmail


class RoleUpdateRequest(BaseModel):
    role: SelfServiceRole


class UserResponse(_CamelModel):
    """User information response (camelCase on the wire)."""
    id: str
    email: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: Role
    bio: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class MessageResponse(BaseModel):
    """Generic acknowledgement used where the body must not leak details."""
    success: bool
    message: str
