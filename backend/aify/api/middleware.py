"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers that map domain errors to HTTP status codes.
"""

import math
import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from aify.core.config import settings
from aify.core.exceptions import (
    AifyException,
    ConcurrencyException,
    ExternalServiceError,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    PermissionException,
    unpack_validation_error,
)
from aify.core.logging import logger
from aify.domains.designs.exceptions import GenerationFailedError


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        (
            f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
            f"Response code: {response.status_code}"
        )
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        response = await call_next(request)
        return response
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        error_message = f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        response_content = {"detail": error_message}

        # Stack traces only in debug mode
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Example of JSON output:
        {
            "errors": [
                {"body.style": "Field required"},
                {"body.credits": "Input should be greater than 0"}
            ]
        }

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def permission_exception_handler(request: Request, exc: PermissionException) -> JSONResponse:
    """Exception handler for PermissionException.

    Returns:
    -------
        JSONResponse: A 403 Forbidden status response that details the error message.

    """
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def payment_required_exception_handler(
    request: Request, exc: PaymentRequiredException
) -> JSONResponse:
    """Exception handler for PaymentRequiredException.

    Insufficient-balance errors carry the balance seen under lock and the
    amount requested, so the client can render an upgrade prompt.

    Returns:
    -------
        JSONResponse: A 402 Payment Required response with the upgrade URL.

    """
    content = {"detail": str(exc), "upgrade_url": settings.UPGRADE_URL}
    balance = getattr(exc, "balance", None)
    if balance is not None:
        content["current_balance"] = balance
        content["required"] = exc.required
    return JSONResponse(status_code=402, content=content)


async def concurrency_exception_handler(
    request: Request, exc: ConcurrencyException
) -> JSONResponse:
    """Exception handler for ConcurrencyException.

    Returns:
    -------
        JSONResponse: A 503 Service Unavailable response with a Retry-After header.

    """
    retry_after = max(1, math.ceil(exc.retry_after))
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
        headers={"Retry-After": str(retry_after)},
    )


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Exception handler for ExternalServiceError.

    Returns:
    -------
        JSONResponse: A 502 Bad Gateway response. Failed generations also
            report their id and whether the credit was returned.

    """
    content = {"detail": exc.message}
    if isinstance(exc, GenerationFailedError):
        content["generation_id"] = exc.generation_id
        content["refunded"] = exc.refunded
    return JSONResponse(status_code=502, content=content)


async def aify_exception_handler(request: Request, exc: AifyException) -> JSONResponse:
    """Generic exception handler for all AifyException types.

    NotFoundException, PermissionException, PaymentRequiredException and
    ConcurrencyException have dedicated handlers registered before this one,
    so their subclasses won't reach here.
    """
    logger.error(f"Unmapped {exc.__class__.__name__}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})
