from __future__ import annotations

from typing import Sequence


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """Raised when ticket input or state violates the entity constraints."""

    def __init__(self, errors: Sequence[str], *, field: str | None = None) -> None:
        self.errors = list(errors)
        self.field = field
        super().__init__("; ".join(self.errors) or "Validation failed")


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class MalformedIdentifierError(TicketServiceError):
    """Raised when a ticket identifier is not in the storage format."""


class StorageError(TicketServiceError):
    """Raised when the document store fails for any other reason."""
