"""Main module of the FastAPI application.

This module sets up the FastAPI application, the billing mirror lifecycle and the
middleware to log incoming requests and unhandled exceptions.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from paymirror.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    ledger_write_exception_handler,
    log_requests,
    mirror_sync_exception_handler,
    not_found_exception_handler,
    paymirror_exception_handler,
    webhook_rejected_exception_handler,
)
from paymirror.api.v1.api import api_router
from paymirror.core.config import settings
from paymirror.core.exceptions import (
    LedgerWriteError,
    MirrorSyncError,
    NotFoundException,
    PayMirrorException,
    WebhookRejectedError,
)
from paymirror.core.mirror_service import BillingMirror


def create_app(mirror: Optional[BillingMirror] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
    ----
        mirror (Optional[BillingMirror]): The mirror to serve. Built from settings
            at startup when omitted.

    Returns:
    -------
        FastAPI: The application.

    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the mirror on startup and stop it on shutdown."""
        if app.state.mirror is None:
            app.state.mirror = BillingMirror.from_settings(settings)
        await app.state.mirror.start()
        try:
            yield
        finally:
            await app.state.mirror.stop()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.mirror = mirror

    app.include_router(api_router)

    # Register middleware directly
    app.middleware("http")(add_request_id)
    app.middleware("http")(log_requests)
    app.middleware("http")(exception_logging_middleware)

    # Register exception handlers
    app.exception_handler(WebhookRejectedError)(webhook_rejected_exception_handler)
    app.exception_handler(LedgerWriteError)(ledger_write_exception_handler)
    app.exception_handler(MirrorSyncError)(mirror_sync_exception_handler)
    app.exception_handler(NotFoundException)(not_found_exception_handler)
    app.exception_handler(PayMirrorException)(paymirror_exception_handler)

    return app


app = create_app()
