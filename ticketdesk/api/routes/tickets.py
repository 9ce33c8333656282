from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ticketdesk.dependencies.tickets import TicketServiceDep
from ticketdesk.tickets.errors import (
    MalformedIdentifierError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from ticketdesk.tickets.models import HistoryEntry, Ticket
from ticketdesk.tickets.reconciler import TicketPatch
from ticketdesk.tickets.state import HistoryAction, TicketStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TicketCreateRequest(CamelModel):
    title: Any = None
    description: Any = None
    contact_name: Any = None
    contact_info: Any = None


class TicketUpdateRequest(CamelModel):
    title: Any = None
    description: Any = None
    contact_name: Any = None
    contact_info: Any = None
    status: Any = None


class ContactModel(CamelModel):
    name: str
    info: str


class HistoryEntryModel(CamelModel):
    action: HistoryAction
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    timestamp: datetime

    @classmethod
    def from_entity(cls, entry: HistoryEntry) -> "HistoryEntryModel":
        return cls(
            action=entry.action,
            old_value=dict(entry.old_value) if entry.old_value is not None else None,
            new_value=dict(entry.new_value) if entry.new_value is not None else None,
            timestamp=entry.timestamp,
        )


class TicketModel(CamelModel):
    id: str
    title: str
    description: str
    contact: ContactModel
    status: TicketStatus
    history: list[HistoryEntryModel] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, ticket: Ticket) -> "TicketModel":
        return cls(
            id=str(ticket.id),
            title=ticket.title,
            description=ticket.description,
            contact=ContactModel(name=ticket.contact.name, info=ticket.contact.info),
            status=ticket.status,
            history=[HistoryEntryModel.from_entity(entry) for entry in ticket.history],
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


def _validation_detail(exc: TicketValidationError) -> dict[str, Any]:
    return {"message": "Validation failed", "errors": exc.errors}


@router.post(
    "",
    response_model=TicketModel,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketModel:
    try:
        ticket = await service.create_ticket(payload.model_dump(by_alias=True))
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
    except TicketServiceError as exc:
        logger.exception("Error creating ticket")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return TicketModel.from_entity(ticket)


@router.get("", response_model=list[TicketModel], response_model_exclude_none=True)
async def list_tickets(
    service: TicketServiceDep,
    status_filter: str | None = Query(default=None, alias="status"),
    sort: str | None = Query(default=None),
) -> list[TicketModel]:
    try:
        tickets = await service.list_tickets(status=status_filter, sort=sort)
    except TicketServiceError as exc:
        logger.exception("Error fetching tickets")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return [TicketModel.from_entity(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketModel, response_model_exclude_none=True)
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> TicketModel:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Ticket not found") from exc
    except MalformedIdentifierError as exc:
        logger.warning("Malformed ticket id %r", ticket_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except TicketServiceError as exc:
        logger.exception("Error fetching ticket %s", ticket_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return TicketModel.from_entity(ticket)


@router.put("/{ticket_id}", response_model=TicketModel, response_model_exclude_none=True)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
) -> TicketModel:
    try:
        patch = TicketPatch.from_mapping(payload.model_dump(by_alias=True))
        ticket = await service.update_ticket(ticket_id, patch)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Ticket not found") from exc
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
    except TicketServiceError as exc:
        logger.exception("Error updating ticket %s", ticket_id)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TicketModel.from_entity(ticket)
