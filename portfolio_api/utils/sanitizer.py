"""Free-text sanitization and field validation for visitor input.

Sanitizing is a pure function: it strips markup-significant characters,
normalizes whitespace and truncates. Validation runs every rule of a form and
collects all violations in input order instead of failing fast, so the
client can fix every field in one round trip.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from pydantic import EmailStr, TypeAdapter, ValidationError

_STRIP_CHARS_RE = re.compile(r"[<>'\"&\\/(){}\[\]]")
_WHITESPACE_RE = re.compile(r"\s+")

_EMAIL_ADAPTER: TypeAdapter[EmailStr] = TypeAdapter(EmailStr)
PHONE_RE = re.compile(r"^\+?[0-9 ().-]{7,}$")

SPAM_SUBSTRINGS: tuple[str, ...] = (
    "viagra",
    "cialis",
    "lottery",
    "winner",
    "congratulations",
    "urgent",
    "act now",
    "limited time",
    "click here",
    "free money",
    "nigerian prince",
    "inheritance",
    "bank transfer",
    "javascript:",
    "vbscript:",
    "onload=",
    "onerror=",
    "onclick=",
    "document.cookie",
    "window.location",
)


class ValidationErrorKind(str, Enum):
    REQUIRED_FIELD = "REQUIRED_FIELD"
    TOO_SHORT = "TOO_SHORT"
    TOO_LONG = "TOO_LONG"
    SPAM_DETECTED = "SPAM_DETECTED"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_CHARACTERS = "INVALID_CHARACTERS"


class FieldKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"


@dataclass(frozen=True)
class FieldRule:
    """Constraints for a single form field.

    Attributes:
        name: Key of the field in the JSON body.
        min_length: Minimum sanitized length (ignored for email/phone).
        max_length: Maximum length before truncation.
        kind: Which validator applies.
        required: Optional fields are skipped when absent or blank.
        label: Human-readable name used in error messages.
    """

    name: str
    min_length: int = 0
    max_length: int = 1000
    kind: FieldKind = FieldKind.TEXT
    required: bool = True
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.name.capitalize()


@dataclass(frozen=True)
class FieldError:
    field: str
    kind: ValidationErrorKind
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "kind": self.kind.value, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of validating a set of fields.

    ``valid`` is derived from ``errors`` so the two can never disagree.
    """

    sanitized_fields: dict[str, str] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error_kinds(self, field_name: str | None = None) -> list[ValidationErrorKind]:
        return [e.kind for e in self.errors if field_name is None or e.field == field_name]


def _strip_and_collapse(value: str) -> str:
    value = _STRIP_CHARS_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", value).strip()


def sanitize_text(value: Any, max_length: int) -> str:
    """Return ``value`` with dangerous characters removed, whitespace
    normalized and length capped.

    Non-string input sanitizes to the empty string. Applying the function to
    its own output returns the same string.

    Args:
        value: Raw field value from the request body.
        max_length: Maximum length of the result.

    Returns:
        Sanitized text, at most ``max_length`` characters long.
    """

    if not isinstance(value, str):
        return ""
    cleaned = _strip_and_collapse(value)
    return cleaned[:max_length].rstrip()


def find_spam(text: str, substrings: Iterable[str] = SPAM_SUBSTRINGS) -> list[str]:
    lowered = text.lower()
    return [s for s in substrings if s in lowered]


def validate_text_field(rule: FieldRule, raw: Any) -> tuple[str, list[FieldError]]:
    """Sanitize and check a free-text field.

    Every violated constraint yields its own error entry; an empty value
    yields only ``REQUIRED_FIELD``.
    """

    label = rule.display_name
    untruncated = _strip_and_collapse(raw) if isinstance(raw, str) else ""
    sanitized = sanitize_text(raw, rule.max_length)

    if not sanitized:
        return "", [
            FieldError(rule.name, ValidationErrorKind.REQUIRED_FIELD, f"{label} is required")
        ]

    errors: list[FieldError] = []
    if len(sanitized) < rule.min_length:
        errors.append(
            FieldError(
                rule.name,
                ValidationErrorKind.TOO_SHORT,
                f"{label} must be at least {rule.min_length} characters",
            )
        )
    if len(untruncated) > rule.max_length:
        errors.append(
            FieldError(
                rule.name,
                ValidationErrorKind.TOO_LONG,
                f"{label} must not exceed {rule.max_length} characters",
            )
        )
    if find_spam(sanitized):
        errors.append(
            FieldError(
                rule.name,
                ValidationErrorKind.SPAM_DETECTED,
                f"{label} contains potentially inappropriate content",
            )
        )
    return sanitized, errors


def _parse_email(value: str) -> str | None:
    """Normalized bare address, or None. ``Name <address>`` forms are rejected."""
    if "<" in value or ">" in value:
        return None
    try:
        return _EMAIL_ADAPTER.validate_python(value).lower()
    except ValidationError:
        return None


def validate_email_field(rule: FieldRule, raw: Any) -> tuple[str, list[FieldError]]:
    """Check an email address against the standard address grammar.

    Syntax only, via pydantic's ``EmailStr`` (email-validator); the domain
    is never resolved.

    The generic sanitizer is not applied: characters such as ``'`` and ``&``
    are legal in the local part.
    """

    value = raw.strip().lower() if isinstance(raw, str) else ""
    if not value:
        return "", [
            FieldError(rule.name, ValidationErrorKind.REQUIRED_FIELD, f"{rule.display_name} is required")
        ]
    if len(value) > rule.max_length:
        return "", [
            FieldError(
                rule.name,
                ValidationErrorKind.TOO_LONG,
                f"{rule.display_name} must not exceed {rule.max_length} characters",
            )
        ]
    address = _parse_email(value)
    if address is None:
        return "", [
            FieldError(
                rule.name,
                ValidationErrorKind.INVALID_EMAIL,
                "Please provide a valid email address",
            )
        ]
    return address, []


def validate_phone_field(rule: FieldRule, raw: Any) -> tuple[str, list[FieldError]]:
    value = _WHITESPACE_RE.sub(" ", raw).strip() if isinstance(raw, str) else ""
    if not value:
        if rule.required:
            return "", [
                FieldError(rule.name, ValidationErrorKind.REQUIRED_FIELD, f"{rule.display_name} is required")
            ]
        return "", []
    if len(value) > rule.max_length:
        return "", [
            FieldError(
                rule.name,
                ValidationErrorKind.TOO_LONG,
                f"{rule.display_name} must not exceed {rule.max_length} characters",
            )
        ]
    if not PHONE_RE.fullmatch(value):
        return "", [
            FieldError(
                rule.name,
                ValidationErrorKind.INVALID_CHARACTERS,
                f"{rule.display_name} may only contain digits, spaces and + - . ( )",
            )
        ]
    return value, []


_VALIDATORS = {
    FieldKind.TEXT: validate_text_field,
    FieldKind.EMAIL: validate_email_field,
    FieldKind.PHONE: validate_phone_field,
}


def validate_fields(rules: Iterable[FieldRule], payload: Mapping[str, Any]) -> ValidationResult:
    """Validate every rule against ``payload``.

    Args:
        rules: Field rules in the order errors should be reported.
        payload: Decoded JSON body.

    Returns:
        ValidationResult with sanitized values for every field that passed
        and one entry per violation, in rule order.
    """

    result = ValidationResult()
    for rule in rules:
        raw = payload.get(rule.name)
        if not rule.required and (raw is None or (isinstance(raw, str) and not raw.strip())):
            continue
        sanitized, errors = _VALIDATORS[rule.kind](rule, raw)
        if errors:
            result.errors.extend(errors)
        else:
            result.sanitized_fields[rule.name] = sanitized
    return result
