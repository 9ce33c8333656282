from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class HistoryAction(str, Enum):
    """Kinds of change recorded in a ticket's history."""

    CREATED = "created"
    STATUS_UPDATED = "status_updated"
    INFORMATION_UPDATED = "information_updated"
