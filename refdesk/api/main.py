"""FastAPI application entry point for refdesk."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from refdesk.api.middleware.logging_middleware import LoggingMiddleware
from refdesk.api.routes import (
    events_router,
    health_router,
    sessions_router,
    users_router,
)
from refdesk.bootstrap.container import get_container
from refdesk.bootstrap.logging import configure_structlog


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging and wire services before serving.

    On shutdown, waits for dispatched events that are still running.
    """
    container = get_container()
    configure_structlog(container.config.environment)
    yield
    await container.dispatcher.drain()


app = FastAPI(
    title="refdesk",
    description="Dispute relay between tournament communities and a referee server",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.include_router(health_router)
app.include_router(events_router)
app.include_router(sessions_router)
app.include_router(users_router)
