# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import auth, users, claims, approvals

# Create main API router
api_router = APIRouter()

# Include all endpoint routers with proper configuration
api_router.include_router(
    auth.router,
    tags=["authentication"]
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    claims.router,
    prefix="/claims",
    tags=["claims"]
)

api_router.include_router(
    approvals.router,
    prefix="/approvals",
    tags=["approvals"]
)
