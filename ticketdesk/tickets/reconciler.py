"""Diff a partial update against a ticket and record what changed."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from . import history
from .errors import TicketValidationError
from .models import HistoryEntry, Ticket, utcnow
from .state import HistoryAction, TicketStatus

_PATCH_KEYS = {
    "title": "title",
    "description": "description",
    "contact_name": "contactName",
    "contact_info": "contactInfo",
}


@dataclass(slots=True)
class TicketPatch:
    """Partial update payload.

    Falsy values (``None``, ``""``, ``0``) leave a field untouched. Any other
    value must be a non-blank string, and ``status`` must name a known status.
    """

    title: Any = None
    description: Any = None
    contact_name: Any = None
    contact_info: Any = None
    status: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TicketPatch:
        values = {name: data.get(key) for name, key in _PATCH_KEYS.items()}
        return cls(status=data.get("status"), **values)

    def validate(self) -> TicketStatus | None:
        """Check every supplied value and return the requested status, if any."""

        errors: list[str] = []
        first_field: str | None = None
        for item in fields(self):
            if item.name == "status":
                continue
            value = getattr(self, item.name)
            if value and (not isinstance(value, str) or not value.strip()):
                errors.append(f"`{_PATCH_KEYS[item.name]}` must be a non-blank string")
                first_field = first_field or _PATCH_KEYS[item.name]

        new_status: TicketStatus | None = None
        if self.status:
            try:
                new_status = TicketStatus(self.status)
            except ValueError:
                errors.append(f"`{self.status}` is not a valid enum value for path `status`.")
                first_field = first_field or "status"

        if errors:
            raise TicketValidationError(errors, field=first_field)
        return new_status


@dataclass(slots=True)
class ReconcileResult:
    status_changed: bool = False
    information_changed: bool = False
    entries: list[HistoryEntry] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status_changed or self.information_changed


def reconcile(ticket: Ticket, patch: TicketPatch) -> ReconcileResult:
    """Apply ``patch`` to ``ticket`` in place and append the matching history.

    At most one ``status_updated`` and one ``information_updated`` entry are
    appended, in that order. ``updated_at`` is refreshed even when nothing
    changed. The patch is validated before the ticket is touched.
    """

    new_status = patch.validate()
    old_info = ticket.information_snapshot()
    old_status = TicketStatus(ticket.status)
    result = ReconcileResult()

    title = _trimmed(patch.title)
    if title and title != ticket.title:
        ticket.title = title
        result.information_changed = True

    if patch.description and patch.description != ticket.description:
        ticket.description = patch.description
        result.information_changed = True

    contact_name = _trimmed(patch.contact_name)
    if contact_name and contact_name != ticket.contact.name:
        ticket.contact.name = contact_name
        result.information_changed = True

    contact_info = _trimmed(patch.contact_info)
    if contact_info and contact_info != ticket.contact.info:
        ticket.contact.info = contact_info
        result.information_changed = True

    if new_status is not None and new_status != old_status:
        ticket.status = new_status
        result.status_changed = True
        result.entries.append(
            history.record(
                ticket,
                HistoryAction.STATUS_UPDATED,
                {"status": old_status.value},
                {"status": new_status.value},
            )
        )

    if result.information_changed:
        result.entries.append(
            history.record(
                ticket,
                HistoryAction.INFORMATION_UPDATED,
                old_info,
                ticket.information_snapshot(),
            )
        )

    ticket.updated_at = utcnow()
    return result


def _trimmed(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.strip()
