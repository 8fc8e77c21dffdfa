"""API v1 router initialization."""
from fastapi import APIRouter

from .login import router as login_router

# Create v1 router
router = APIRouter()

# Include face login endpoints
router.include_router(
    login_router,
    prefix="/login",
    tags=["login"]
)
