from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from urllib.parse import urlencode

import httpx
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from gighub.config import Settings
from gighub.errors import AuthError


class Provider(str, Enum):
    GOOGLE = "google"


@dataclass(frozen=True)
class ProviderIdentity:
    provider: Provider
    email: str
    email_verified: bool
    subject: str | None = None


class IdentityProvider(Protocol):
    name: Provider

    def begin_auth(self, state: str) -> str:
        """Return the URL the browser is redirected to."""

    def complete_auth(self, code: str) -> ProviderIdentity:
        """Exchange the callback code for a verified identity or raise AuthError."""


GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


class GoogleProvider:
    name = Provider.GOOGLE

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri

    def begin_auth(self, state: str) -> str:
        query = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(query)}"

    def complete_auth(self, code: str) -> ProviderIdentity:
        if not code:
            raise AuthError("Missing authorization code.")

        try:
            response = httpx.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "redirect_uri": self._redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=10.0,
            )
        except httpx.HTTPError as exc:
            raise AuthError("Failed to reach Google.") from exc

        if response.status_code != 200:
            raise AuthError("Google rejected the authorization code.")

        raw_id_token = response.json().get("id_token")
        if not raw_id_token:
            raise AuthError("Google did not return an ID token.")

        try:
            token_info = google_id_token.verify_oauth2_token(
                raw_id_token,
                google_requests.Request(),
                self._client_id,
            )
        except (ValueError, google_exceptions.GoogleAuthError) as exc:
            raise AuthError("Invalid Google token.") from exc

        issuer = str(token_info.get("iss") or "")
        if issuer not in GOOGLE_ISSUERS:
            raise AuthError("Invalid token issuer.")

        email = str(token_info.get("email") or "").strip()
        if not email or not token_info.get("email_verified"):
            raise AuthError("Google email not verified.")

        return ProviderIdentity(
            provider=self.name,
            email=email,
            email_verified=True,
            subject=str(token_info.get("sub") or "") or None,
        )


def build_providers(settings: Settings) -> dict[Provider, IdentityProvider]:
    providers: dict[Provider, IdentityProvider] = {}
    if settings.google_enabled:
        providers[Provider.GOOGLE] = GoogleProvider(
            settings.google_client_id,
            settings.google_client_secret,
            f"{settings.base_url}/auth/{Provider.GOOGLE.value}/callback",
        )
    return providers
