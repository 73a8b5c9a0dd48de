from __future__ import annotations

from fastapi import Depends, Request

from gighub.auth.csrf import CSRFGuard
from gighub.auth.providers import IdentityProvider, Provider
from gighub.config import Settings
from gighub.errors import LoginRequired
from gighub.services.guestbook import GuestbookStore
from gighub.services.identity import IdentityResolver
from gighub.services.sessions import SessionManager


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_resolver(request: Request) -> IdentityResolver:
    return request.app.state.resolver


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_csrf_guard(request: Request) -> CSRFGuard:
    return request.app.state.csrf


def get_guestbook(request: Request) -> GuestbookStore:
    return request.app.state.guestbook


def get_providers(request: Request) -> dict[Provider, IdentityProvider]:
    return request.app.state.providers


async def csrf_protect(request: Request, guard: CSRFGuard = Depends(get_csrf_guard)) -> None:
    await guard.protect(request)


def current_user_id(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
) -> int | None:
    return sessions.validate(request.cookies.get(settings.session_cookie_name))


def require_user(user_id: int | None = Depends(current_user_id)) -> int:
    if user_id is None:
        raise LoginRequired("Login required.")
    return user_id
