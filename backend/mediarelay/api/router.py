"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from mediarelay.api import health, uploads, api_keys, stats, auth

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(uploads.router, prefix="/upload", tags=["uploads"])
api_router.include_router(api_keys.router, prefix="/api-keys", tags=["admin"])
api_router.include_router(stats.router, prefix="/stats", tags=["admin"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
