from __future__ import annotations

import hmac
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from gighub.auth.cookies import start_session
from gighub.auth.deps import get_app_settings, get_providers, get_resolver
from gighub.auth.providers import IdentityProvider, Provider
from gighub.config import Settings
from gighub.errors import AuthError
from gighub.services.identity import IdentityResolver


router = APIRouter(prefix="/auth", tags=["oauth"])
STATE_COOKIE_NAME = "oauth_state"
STATE_MAX_AGE_SECONDS = 600


def _resolve_provider(name: str, providers: dict[Provider, IdentityProvider]) -> IdentityProvider:
    try:
        key = Provider(name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown provider.") from exc

    provider = providers.get(key)
    if provider is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider is not configured.")
    return provider


@router.get("/{provider}")
def begin_auth(
    provider: str,
    providers: dict[Provider, IdentityProvider] = Depends(get_providers),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    identity_provider = _resolve_provider(provider, providers)
    state = secrets.token_urlsafe(24)

    response = RedirectResponse(url=identity_provider.begin_auth(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=state,
        max_age=STATE_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/auth",
    )
    return response


@router.get("/{provider}/callback")
def complete_auth(
    provider: str,
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    providers: dict[Provider, IdentityProvider] = Depends(get_providers),
    resolver: IdentityResolver = Depends(get_resolver),
) -> RedirectResponse:
    identity_provider = _resolve_provider(provider, providers)
    if error:
        raise AuthError("Login with the provider was not completed.")

    expected_state = request.cookies.get(STATE_COOKIE_NAME) or ""
    if not expected_state or not state or not hmac.compare_digest(expected_state.encode(), state.encode()):
        raise AuthError("Invalid OAuth state.")

    identity = identity_provider.complete_auth(code)
    user = resolver.resolve_oauth(identity)

    response = start_session(request, user.id)
    response.delete_cookie(STATE_COOKIE_NAME, path="/auth")
    return response
