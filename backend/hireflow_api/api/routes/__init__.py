"""API route registrations."""
from fastapi import APIRouter

from hireflow_api.api.routes import admin, tenant


api_router = APIRouter()
api_router.include_router(tenant.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
