from fastapi import APIRouter

from airtime import __version__
from airtime.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": __version__,
        "env": settings.APP_ENV,
        "events_backend": settings.EVENTS_BACKEND,
    }
