from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from ticketdesk.tickets import history
from ticketdesk.tickets.models import Ticket
from ticketdesk.tickets.state import TicketStatus


class DummyAcquire:
    def __init__(self, connection):
        self._connection = connection

    async def __aenter__(self):
        return self._connection

    async def __aexit__(self, exc_type, exc, tb):
        return False


class DummyPool:
    def __init__(self, connection):
        self._connection = connection

    def acquire(self):
        return DummyAcquire(self._connection)


@pytest.fixture
def connection():
    return AsyncMock()


@pytest.fixture
def make_pool():
    return DummyPool


@pytest.fixture
def pool(connection):
    return DummyPool(connection)


@pytest.fixture
def make_ticket():
    """Build a ticket that looks like it was inserted a day ago."""

    def factory(
        *,
        title: str = "Printer offline",
        description: str = "The 3rd floor printer does not respond",
        contact_name: str = "Dana Reyes",
        contact_info: str = "dana@example.com",
        status: TicketStatus = TicketStatus.PENDING,
        age: timedelta = timedelta(days=1),
    ) -> Ticket:
        created = datetime.now(timezone.utc) - age
        ticket = Ticket.new(
            title=title,
            description=description,
            contact_name=contact_name,
            contact_info=contact_info,
            status=status,
        )
        ticket.created_at = created
        ticket.updated_at = created
        ticket.id = uuid4()
        history.record_created(ticket)
        return ticket

    return factory
