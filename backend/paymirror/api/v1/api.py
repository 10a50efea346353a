"""API routes for the FastAPI application."""

from fastapi import APIRouter

from paymirror.api.v1.endpoints import health, sync, webhooks

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(webhooks.router, prefix="/billing", tags=["billing"])
api_router.include_router(sync.router, prefix="/billing", tags=["billing"])
