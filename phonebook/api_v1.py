"""API v1 router: all JSON endpoints under /api/v1 prefix."""

from fastapi import APIRouter

from .phones.api_routes import router as phones_api_router

api_v1_router = APIRouter(prefix="/api/v1", tags=["api-v1"])

api_v1_router.include_router(phones_api_router)
