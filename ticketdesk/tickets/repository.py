from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Mapping
from uuid import UUID, uuid4

import asyncpg

from . import history
from .errors import MalformedIdentifierError, StorageError, TicketNotFoundError
from .models import Contact, HistoryEntry, Ticket
from .state import HistoryAction, TicketStatus

logger = logging.getLogger(__name__)

SORT_LATEST = "latest"


class TicketRepository:
    """Document store for tickets backed by a PostgreSQL JSONB column.

    Each row holds the whole ticket document; ``created_at`` and ``updated_at``
    are mirrored into typed columns so listings can be ordered by them.
    """

    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id UUID PRIMARY KEY,
        document JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """

    _CREATE_STATUS_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS tickets_status_idx ON tickets ((document->>'status'))
    """

    _INSERT_TICKET_SQL = """
    INSERT INTO tickets (id, document, created_at, updated_at)
    VALUES ($1, $2::jsonb, $3, $4)
    """

    _REPLACE_TICKET_SQL = """
    UPDATE tickets
    SET document = $2::jsonb,
        updated_at = $3
    WHERE id = $1
    RETURNING id
    """

    _SELECT_TICKET_SQL = """
    SELECT id, document
    FROM tickets
    WHERE id = $1
    """

    _LIST_TICKETS_SQL = """
    SELECT id, document
    FROM tickets
    ORDER BY {order} DESC
    """

    _LIST_TICKETS_BY_STATUS_SQL = """
    SELECT id, document
    FROM tickets
    WHERE document->>'status' = $1
    ORDER BY {order} DESC
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._connection() as connection:
            await connection.execute(self._CREATE_TICKETS_SQL)
            await connection.execute(self._CREATE_STATUS_INDEX_SQL)

    async def insert(self, ticket: Ticket) -> Ticket:
        """Persist a newly constructed ticket, assigning its id and ``created`` entry."""

        ticket.validate()
        ticket.id = uuid4()
        history.record_created(ticket)
        async with self._connection() as connection:
            await connection.execute(
                self._INSERT_TICKET_SQL,
                ticket.id,
                json.dumps(self._ticket_to_document(ticket)),
                ticket.created_at,
                ticket.updated_at,
            )
        logger.debug("Inserted ticket %s", ticket.id)
        return ticket

    async def find(self, *, status: str | None = None, sort: str | None = None) -> list[Ticket]:
        order = "updated_at" if sort == SORT_LATEST else "created_at"
        async with self._connection() as connection:
            if status:
                rows = await connection.fetch(self._LIST_TICKETS_BY_STATUS_SQL.format(order=order), status)
            else:
                rows = await connection.fetch(self._LIST_TICKETS_SQL.format(order=order))
        return [self._row_to_ticket(row) for row in rows]

    async def find_by_id(self, ticket_id: str | UUID) -> Ticket | None:
        key = _to_uuid(ticket_id)
        async with self._connection() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, key)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def save(self, ticket: Ticket) -> Ticket:
        """Replace the stored document with ``ticket`` in a single statement."""

        if ticket.id is None:
            raise TicketNotFoundError("Ticket has not been inserted yet")
        ticket.validate()
        async with self._connection() as connection:
            row = await connection.fetchrow(
                self._REPLACE_TICKET_SQL,
                ticket.id,
                json.dumps(self._ticket_to_document(ticket)),
                ticket.updated_at,
            )
        if row is None:
            raise TicketNotFoundError(f"Ticket {ticket.id} not found")
        return ticket

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        try:
            async with self._pool.acquire() as connection:
                yield connection
        except (asyncpg.PostgresError, OSError) as exc:
            raise StorageError(str(exc)) from exc

    @staticmethod
    def _ticket_to_document(ticket: Ticket) -> dict[str, Any]:
        return {
            "title": ticket.title,
            "description": ticket.description,
            "contact": ticket.contact.to_dict(),
            "status": TicketStatus(ticket.status).value,
            "history": [_entry_to_document(entry) for entry in ticket.history],
            "createdAt": _isoformat(ticket.created_at),
            "updatedAt": _isoformat(ticket.updated_at),
        }

    @staticmethod
    def _row_to_ticket(row: Mapping[str, Any]) -> Ticket:
        document = row["document"]
        if isinstance(document, (str, bytes)):
            document = json.loads(document)
        contact = document.get("contact") or {}
        return Ticket(
            id=_to_uuid(row["id"]),
            title=str(document["title"]),
            description=str(document["description"]),
            contact=Contact(name=str(contact.get("name", "")), info=str(contact.get("info", ""))),
            status=TicketStatus(str(document["status"])),
            history=[_document_to_entry(item) for item in document.get("history") or []],
            created_at=_ensure_datetime(document["createdAt"]),
            updated_at=_ensure_datetime(document["updatedAt"]),
        )


def _entry_to_document(entry: HistoryEntry) -> dict[str, Any]:
    document: dict[str, Any] = {"action": HistoryAction(entry.action).value}
    if entry.old_value is not None:
        document["oldValue"] = dict(entry.old_value)
    if entry.new_value is not None:
        document["newValue"] = dict(entry.new_value)
    document["timestamp"] = _isoformat(entry.timestamp)
    return document


def _document_to_entry(document: Mapping[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        action=HistoryAction(str(document["action"])),
        timestamp=_ensure_datetime(document["timestamp"]),
        old_value=document.get("oldValue"),
        new_value=document.get("newValue"),
    )


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise MalformedIdentifierError(f"Cast to UUID failed for value {value!r}") from exc


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return _ensure_datetime(value).isoformat()


def _ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return _ensure_datetime(datetime.fromisoformat(str(value)))
