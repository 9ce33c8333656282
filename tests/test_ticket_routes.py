from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from ticketdesk.dependencies import tickets as ticket_deps
from ticketdesk.main import create_app
from ticketdesk.tickets import history
from ticketdesk.tickets.errors import (
    MalformedIdentifierError,
    StorageError,
    TicketNotFoundError,
    TicketValidationError,
)
from ticketdesk.tickets.reconciler import TicketPatch
from ticketdesk.tickets.service import TicketService
from ticketdesk.tickets.state import HistoryAction, TicketStatus


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[ticket_deps.get_ticket_service] = override_service

    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_ping():
    client = TestClient(create_app())

    assert client.get("/ping").json() == {"status": "ok"}


def test_ticket_routes_unavailable_without_service():
    client = TestClient(create_app())

    response = client.get("/tickets")

    assert response.status_code == 503


def test_create_ticket_returns_created(ticket_client, make_ticket):
    client, service = ticket_client
    ticket = make_ticket()
    service.create_ticket = AsyncMock(return_value=ticket)

    response = client.post(
        "/tickets",
        json={
            "title": "Printer offline",
            "description": "The 3rd floor printer does not respond",
            "contactName": "Dana Reyes",
            "contactInfo": "dana@example.com",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == str(ticket.id)
    assert body["contact"] == {"name": "Dana Reyes", "info": "dana@example.com"}
    assert body["status"] == "pending"
    assert "createdAt" in body and "updatedAt" in body
    created = body["history"][0]
    assert created["action"] == "created"
    assert "oldValue" not in created
    assert created["newValue"]["status"] == "pending"
    payload = service.create_ticket.await_args.args[0]
    assert payload["contactName"] == "Dana Reyes"


def test_create_ticket_validation_failure(ticket_client):
    client, service = ticket_client
    service.create_ticket = AsyncMock(
        side_effect=TicketValidationError(["Description is required", "Contact name is required"])
    )

    response = client.post("/tickets", json={"title": "Incomplete", "contactInfo": 7})

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "message": "Validation failed",
        "errors": ["Description is required", "Contact name is required"],
    }
    payload = service.create_ticket.await_args.args[0]
    assert payload["contactInfo"] == 7
    assert payload["description"] is None


def test_create_ticket_storage_failure(ticket_client):
    client, service = ticket_client
    service.create_ticket = AsyncMock(side_effect=StorageError("database unavailable"))

    response = client.post("/tickets", json={})

    assert response.status_code == 500


def test_list_tickets_passes_query(ticket_client, make_ticket):
    client, service = ticket_client
    service.list_tickets = AsyncMock(return_value=[make_ticket(), make_ticket(title="Other")])

    response = client.get("/tickets", params={"status": "pending", "sort": "latest"})

    assert response.status_code == 200
    assert [item["title"] for item in response.json()] == ["Printer offline", "Other"]
    service.list_tickets.assert_awaited_with(status="pending", sort="latest")


def test_list_tickets_without_query(ticket_client):
    client, service = ticket_client
    service.list_tickets = AsyncMock(return_value=[])

    response = client.get("/tickets")

    assert response.json() == []
    service.list_tickets.assert_awaited_with(status=None, sort=None)


def test_get_ticket_not_found(ticket_client):
    client, service = ticket_client
    service.get_ticket = AsyncMock(side_effect=TicketNotFoundError("missing"))

    response = client.get(f"/tickets/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["detail"] == "Ticket not found"


def test_get_ticket_malformed_identifier_is_server_error(ticket_client):
    client, service = ticket_client
    service.get_ticket = AsyncMock(side_effect=MalformedIdentifierError("Cast to UUID failed"))

    response = client.get("/tickets/invalid-id")

    assert response.status_code == 500
    assert "Cast to UUID failed" in response.json()["detail"]


def test_update_ticket_returns_history(ticket_client, make_ticket):
    client, service = ticket_client
    ticket = make_ticket()
    ticket.status = TicketStatus.RESOLVED
    history.record(ticket, HistoryAction.STATUS_UPDATED, {"status": "pending"}, {"status": "resolved"})
    service.update_ticket = AsyncMock(return_value=ticket)

    response = client.put(f"/tickets/{ticket.id}", json={"status": "resolved", "contactName": "Dana R."})

    assert response.status_code == 200
    body = response.json()
    assert body["history"][-1]["oldValue"] == {"status": "pending"}
    assert body["history"][-1]["newValue"] == {"status": "resolved"}
    ticket_id, patch = service.update_ticket.await_args.args
    assert ticket_id == str(ticket.id)
    assert patch == TicketPatch(status="resolved", contact_name="Dana R.")


def test_update_ticket_not_found(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(side_effect=TicketNotFoundError("missing"))

    response = client.put(f"/tickets/{uuid4()}", json={"title": "x"})

    assert response.status_code == 404


def test_update_ticket_invalid_status(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(
        side_effect=TicketValidationError(["`closed` is not a valid enum value for path `status`."], field="status")
    )

    response = client.put(f"/tickets/{uuid4()}", json={"status": "closed"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Validation failed"


def test_update_ticket_other_failures_are_client_errors(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(side_effect=MalformedIdentifierError("bad id"))

    response = client.put("/tickets/not-a-uuid", json={})

    assert response.status_code == 400


def test_no_delete_route(ticket_client):
    client, _ = ticket_client

    response = client.delete(f"/tickets/{uuid4()}")

    assert response.status_code == 405


@pytest.fixture
def stored_ticket_client(make_ticket):
    ticket = make_ticket()
    repository = AsyncMock()
    repository.find_by_id = AsyncMock(return_value=ticket)
    repository.save = AsyncMock(side_effect=lambda saved: saved)
    app = create_app()

    async def override_service():
        return TicketService(repository)

    app.dependency_overrides[ticket_deps.get_ticket_service] = override_service
    try:
        yield TestClient(app), ticket, repository
    finally:
        app.dependency_overrides.clear()


@pytest.mark.parametrize(
    ("body", "error_fragment"),
    [
        ({"status": 5}, "status"),
        ({"title": 123}, "title"),
        ({"description": "   "}, "description"),
    ],
)
def test_update_rejects_bad_values_with_400(stored_ticket_client, body, error_fragment):
    client, ticket, repository = stored_ticket_client

    response = client.put(f"/tickets/{ticket.id}", json=body)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Validation failed"
    assert any(error_fragment in error for error in detail["errors"])
    repository.save.assert_not_awaited()
    assert len(ticket.history) == 1


def test_update_with_valid_body_reaches_storage(stored_ticket_client):
    client, ticket, repository = stored_ticket_client

    response = client.put(f"/tickets/{ticket.id}", json={"status": "accepted", "description": "X"})

    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()["history"]]
    assert actions == ["created", "status_updated", "information_updated"]
    repository.save.assert_awaited_once()


def test_non_object_bodies_are_client_errors(ticket_client):
    client, service = ticket_client

    created = client.post("/tickets", json=["x"])
    updated = client.put(f"/tickets/{uuid4()}", json="resolved")

    for response in (created, updated):
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Validation failed"
        assert response.json()["detail"]["errors"]
    service.create_ticket.assert_not_awaited()
    service.update_ticket.assert_not_awaited()
