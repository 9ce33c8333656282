from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import TicketNotFoundError, TicketValidationError
from .models import Ticket
from .reconciler import TicketPatch, reconcile
from .repository import TicketRepository
from .validation import validate_ticket_data

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TicketService:
    """High level orchestration for ticket lifecycle operations."""

    repository: TicketRepository

    async def ensure_schema(self) -> None:
        await self.repository.ensure_schema()

    async def create_ticket(self, data: Mapping[str, Any]) -> Ticket:
        validation = validate_ticket_data(data)
        if not validation.is_valid:
            raise TicketValidationError(validation.errors)

        ticket = Ticket.new(
            title=data["title"],
            description=data["description"],
            contact_name=data["contactName"],
            contact_info=data["contactInfo"],
        )
        saved = await self.repository.insert(ticket)
        logger.info("Created ticket %s", saved.id)
        return saved

    async def list_tickets(self, *, status: str | None = None, sort: str | None = None) -> list[Ticket]:
        return await self.repository.find(status=status, sort=sort)

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self.repository.find_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def update_ticket(self, ticket_id: str, patch: TicketPatch) -> Ticket:
        ticket = await self.get_ticket(ticket_id)
        result = reconcile(ticket, patch)
        saved = await self.repository.save(ticket)
        if result.changed:
            logger.info(
                "Updated ticket %s (status_changed=%s, information_changed=%s)",
                saved.id,
                result.status_changed,
                result.information_changed,
            )
        else:
            logger.debug("Touched ticket %s without field changes", saved.id)
        return saved
