"""Pydantic schemas for the contact API."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.shared.contact.errors import ClientError


# Non-whitespace local part, "@", non-whitespace domain containing a dot.
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_blank(value: Any) -> bool:
    # null, false, 0 and NaN count as missing, like an empty string
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or value != value
    return False


def _as_text(value: Any) -> str:
    """Coerces a submitted value to text the way a loosely-typed form would."""
    if _is_blank(value):
        return ""
    return _to_string(value)


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_to_string(item) for item in value)
    return str(value)


class ContactSubmission(BaseModel):
    """One contact-form submission. Missing fields become empty strings."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    email: str = ""
    message: str = ""
    # Only the form's hidden "_honeypot" input fills this field
    honeypot: str = Field(default="", validation_alias="_honeypot")

    @field_validator("name", "email", "message", "honeypot", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)

    @property
    def is_bot(self) -> bool:
        """A filled honeypot means the form was completed by a script."""
        return bool(self.honeypot)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_submission(submission: ContactSubmission) -> None:
    """
    Validates a submission, raising ClientError for the first failing check.

    Order matters: name, email presence, email shape, message.
    """
    if not submission.name:
        raise ClientError("Il campo name è obbligatorio")
    if not submission.email:
        raise ClientError("Il campo email è obbligatorio")
    if not is_valid_email(submission.email):
        raise ClientError("Email non valida")
    if not submission.message:
        raise ClientError("Il campo message è obbligatorio")


class ContactResponse(BaseModel):
    """Schema for a successful contact submission."""
    ok: bool = True


class ContactErrorResponse(BaseModel):
    """Schema for every failed contact submission."""
    error: str
