"""Ticket domain models, audit history and services."""

from .errors import (
    MalformedIdentifierError,
    StorageError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from .models import Contact, HistoryEntry, Ticket
from .reconciler import ReconcileResult, TicketPatch, reconcile
from .repository import TicketRepository
from .service import TicketService
from .state import HistoryAction, TicketStatus
from .validation import ValidationResult, validate_ticket_data

__all__ = [
    "Contact",
    "HistoryAction",
    "HistoryEntry",
    "MalformedIdentifierError",
    "ReconcileResult",
    "StorageError",
    "Ticket",
    "TicketNotFoundError",
    "TicketPatch",
    "TicketRepository",
    "TicketService",
    "TicketServiceError",
    "TicketStatus",
    "TicketValidationError",
    "ValidationResult",
    "reconcile",
    "validate_ticket_data",
]
