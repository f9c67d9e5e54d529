"""Versioned API router."""

from fastapi import APIRouter

from . import auth, health, holding_deposits

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(holding_deposits.router, tags=["holding-deposits"])

__all__ = ["router"]
