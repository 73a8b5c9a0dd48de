from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from gighub import __version__
from gighub.auth.deps import get_app_settings
from gighub.config import Settings


router = APIRouter(tags=["system"])


@router.get("/")
def root(settings: Settings = Depends(get_app_settings)) -> dict:
    return {"service": settings.app_name, "status": "online", "version": __version__}


@router.get("/health")
def health_check() -> dict:
    return {"status": "healthy"}


@router.get("/version", response_class=PlainTextResponse)
def version(settings: Settings = Depends(get_app_settings)) -> str:
    return settings.git_sha
