"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import admin, doctors, health, users

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(users.router, prefix="/user", tags=["Users"])
api_router.include_router(doctors.router, prefix="/doctor", tags=["Doctors"])
api_router.include_router(admin.router, tags=["Admin"])
