"""API routes for the FastAPI application."""

from fastapi import APIRouter

from aify.api.v1.endpoints import billing, credits, designs, health, subscriptions, users

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(credits.router, prefix="/credits", tags=["credits"])
api_router.include_router(designs.router, prefix="/designs", tags=["designs"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
