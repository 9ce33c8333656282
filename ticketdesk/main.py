from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from ticketdesk.api.errors import request_validation_handler
from ticketdesk.api.routes import ping, tickets
from ticketdesk.core.config import get_settings
from ticketdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketdesk.services.postgres import PostgresPoolManager
from ticketdesk.tickets.repository import TicketRepository
from ticketdesk.tickets.service import TicketService


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    postgres = PostgresPoolManager(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_pool_min_size,
        max_size=settings.postgres_pool_max_size,
    )
    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.postgres = postgres
    app.state.ticket_service = None
    try:
        await postgres.check_connection()
        pool = await postgres.get_pool()
        service = TicketService(TicketRepository(pool))
        await service.ensure_schema()
        app.state.ticket_service = service
    except Exception:
        logger.exception("Ticket service initialisation failed; ticket routes will answer 503")
    try:
        yield
    finally:
        await postgres.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    return app


app = create_app()
