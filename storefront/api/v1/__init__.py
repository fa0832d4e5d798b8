"""API v1 routes."""

from fastapi import APIRouter

from storefront.api.v1 import auth, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/users", tags=["users"])
