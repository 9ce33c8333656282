from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from .errors import TicketValidationError
from .state import HistoryAction, TicketStatus


def utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Contact:
    """Reporter of a ticket and a free-form way to reach them."""

    name: str
    info: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "info": self.info}


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    """Immutable audit record describing one classified change to a ticket."""

    action: HistoryAction
    timestamp: datetime
    old_value: Mapping[str, Any] | None = None
    new_value: Mapping[str, Any] | None = None


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket and its audit history.

    Construction normalizes and validates every field; ``validate`` repeats the
    checks after in-place mutation so an invalid ticket never reaches storage.
    ``id`` stays ``None`` until the ticket is first inserted.
    """

    title: str
    description: str
    contact: Contact
    status: TicketStatus = TicketStatus.PENDING
    history: list[HistoryEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    id: UUID | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at
        self.validate()

    @classmethod
    def new(
        cls,
        *,
        title: str,
        description: str,
        contact_name: str,
        contact_info: str,
        status: TicketStatus | str = TicketStatus.PENDING,
    ) -> Ticket:
        return cls(
            title=title,
            description=description,
            contact=Contact(name=contact_name, info=contact_info),
            status=status,  # type: ignore[arg-type]
        )

    def validate(self) -> None:
        errors: list[str] = []
        first_field: str | None = None

        def fail(name: str, message: str) -> None:
            nonlocal first_field
            errors.append(message)
            if first_field is None:
                first_field = name

        if _is_blank(self.title):
            fail("title", "Path `title` is required.")
        else:
            self.title = self.title.strip()

        if _is_blank(self.description):
            fail("description", "Path `description` is required.")

        if _is_blank(self.contact.name):
            fail("contact.name", "Path `contact.name` is required.")
        else:
            self.contact.name = self.contact.name.strip()

        if _is_blank(self.contact.info):
            fail("contact.info", "Path `contact.info` is required.")
        else:
            self.contact.info = self.contact.info.strip()

        try:
            self.status = TicketStatus(self.status)
        except ValueError:
            fail("status", f"`{self.status}` is not a valid enum value for path `status`.")

        if errors:
            raise TicketValidationError(errors, field=first_field)

    def information_snapshot(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "contact": self.contact.to_dict(),
        }

    def snapshot(self) -> dict[str, Any]:
        values = self.information_snapshot()
        values["status"] = TicketStatus(self.status).value
        return values


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()
