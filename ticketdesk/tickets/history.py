"""Append-only audit trail for tickets."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Mapping

from .models import HistoryEntry, Ticket, utcnow
from .state import HistoryAction


def record(
    ticket: Ticket,
    action: HistoryAction,
    old_value: Mapping[str, Any] | None = None,
    new_value: Mapping[str, Any] | None = None,
    *,
    timestamp: datetime | None = None,
) -> HistoryEntry:
    """Append a history entry to ``ticket`` and return it.

    Values that are ``None`` or empty are not recorded: the resulting entry
    carries ``None`` and serializes without the key. Recorded values are deep
    copied so that later mutation of the ticket cannot rewrite history.
    """

    entry = HistoryEntry(
        action=HistoryAction(action),
        timestamp=timestamp or utcnow(),
        old_value=_recorded(old_value),
        new_value=_recorded(new_value),
    )
    ticket.history.append(entry)
    return entry


def record_created(ticket: Ticket) -> HistoryEntry | None:
    """Synthesize the ``created`` entry for a ticket that has never been saved."""

    if ticket.history:
        return None
    return record(
        ticket,
        HistoryAction.CREATED,
        new_value=ticket.snapshot(),
        timestamp=ticket.created_at,
    )


def _recorded(value: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not value:
        return None
    return copy.deepcopy(dict(value))
