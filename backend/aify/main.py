"""Main module of the FastAPI application.

This module sets up the FastAPI application and the middleware to log incoming requests
and unhandled exceptions.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from aify.api.middleware import (
    add_request_id,
    aify_exception_handler,
    concurrency_exception_handler,
    exception_logging_middleware,
    external_service_exception_handler,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    payment_required_exception_handler,
    permission_exception_handler,
    validation_exception_handler,
)
from aify.api.v1.api import api_router
from aify.core.config import settings
from aify.core.exceptions import (
    AifyException,
    ConcurrencyException,
    ExternalServiceError,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    PermissionException,
)
from aify.core.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container, creates missing tables and starts the
    metrics server when enabled.
    """
    # Initialize the dependency injection container (fail fast if wiring is broken)
    from aify.core import container as container_mod
    from aify.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")
    c = container_mod.container

    if settings.DB_CREATE_SCHEMA:
        from aify.db.init_db import create_schema
        from aify.db.session import async_engine

        await create_schema(async_engine)

    metrics_server = None
    if settings.METRICS_ENABLED:
        from aify.api.metrics import MetricsServer

        metrics_server = MetricsServer(c.metrics_renderer, port=settings.METRICS_PORT)
        await metrics_server.start()

    try:
        yield
    finally:
        if metrics_server is not None:
            await metrics_server.stop()
        await c.image_generator.close()
        container_mod.reset_container()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Register middleware. Starlette wraps in reverse, so the last registered runs outermost
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(PermissionException)(permission_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(PaymentRequiredException)(payment_required_exception_handler)
app.exception_handler(ConcurrencyException)(concurrency_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)

# Register custom Aify exception handlers
app.exception_handler(AifyException)(aify_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
