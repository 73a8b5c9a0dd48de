from __future__ import annotations

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from gighub.config import Settings


def set_session_cookie(response: Response, token: str, settings: Settings, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.session_cookie_name, path="/")


def start_session(request: Request, user_id: int, redirect_to: str = "/guestbook") -> RedirectResponse:
    """Rotate the session and CSRF tokens for ``user_id`` and redirect."""
    state = request.app.state
    settings: Settings = state.settings
    previous = request.cookies.get(settings.session_cookie_name)
    token = state.sessions.establish(user_id, previous_token=previous)

    response = RedirectResponse(url=redirect_to, status_code=303)
    set_session_cookie(response, token, settings, int(state.sessions.lifetime.total_seconds()))
    state.csrf.rotate(response)
    return response


def end_session(request: Request, redirect_to: str = "/") -> RedirectResponse:
    state = request.app.state
    settings: Settings = state.settings
    state.sessions.destroy(request.cookies.get(settings.session_cookie_name))

    response = RedirectResponse(url=redirect_to, status_code=303)
    clear_session_cookie(response, settings)
    state.csrf.rotate(response)
    return response
