from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "Title is required"),
    ("description", "Description is required"),
    ("contactName", "Contact name is required"),
    ("contactInfo", "Contact information is required"),
)


@dataclass(slots=True)
class ValidationResult:
    """Outcome of checking a ticket creation payload."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_ticket_data(data: Mapping[str, Any]) -> ValidationResult:
    """Report every missing, non-string or blank creation field at once."""

    errors = [
        message
        for key, message in _REQUIRED_FIELDS
        if not _is_filled(data.get(key))
    ]
    return ValidationResult(is_valid=not errors, errors=errors)


def _is_filled(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""
