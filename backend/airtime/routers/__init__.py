from fastapi import APIRouter

from . import health, projects

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router)
api_router.include_router(projects.router)

__all__ = ["api_router"]
