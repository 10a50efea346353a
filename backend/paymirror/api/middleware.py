"""Middleware for the FastAPI application.

This module contains middleware and exception handlers that process requests and responses.
"""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from paymirror.core.config import settings
from paymirror.core.exceptions import (
    ConversionError,
    EntitySyncError,
    ExternalServiceError,
    LedgerWriteError,
    MirrorSyncError,
    NotFoundException,
    PayMirrorException,
    WebhookRejectedError,
)
from paymirror.core.logging import logger


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
    logger.with_context(request_id=getattr(request.state, "request_id", "")).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
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
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {
            "detail": f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        }
        # Stack traces only leave the process in development
        if settings.LOCAL_DEVELOPMENT or settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


async def webhook_rejected_exception_handler(
    request: Request, exc: WebhookRejectedError
) -> JSONResponse:
    """Exception handler for WebhookRejectedError.

    The provider must not retry a rejected delivery, so this is always a 400.

    Returns:
    -------
        JSONResponse: A 400 Bad Request response.

    """
    logger.warning(f"Webhook rejected: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def ledger_write_exception_handler(request: Request, exc: LedgerWriteError) -> JSONResponse:
    """Exception handler for LedgerWriteError.

    Returns:
    -------
        JSONResponse: A 500 response, so the provider retries the delivery.

    """
    logger.error(f"Webhook not recorded: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def mirror_sync_exception_handler(request: Request, exc: MirrorSyncError) -> JSONResponse:
    """Exception handler for MirrorSyncError.

    Returns:
    -------
        JSONResponse: A 502 Bad Gateway response with the failed kinds and the partial report.

    """
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "failed": [failure.kind.value for failure in exc.failures],
            "report": exc.report.model_dump(mode="json"),
        },
    )


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def paymirror_exception_handler(request: Request, exc: PayMirrorException) -> JSONResponse:
    """Generic exception handler for the remaining PayMirrorException types.

    Returns:
    -------
        JSONResponse: HTTP response with a status code matching the failure.

    """
    if isinstance(exc, (ExternalServiceError, EntitySyncError)):
        status_code = 502
    elif isinstance(exc, ConversionError):
        status_code = 422
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
