from __future__ import annotations

import hmac
import secrets
from collections.abc import Iterable

from fastapi import Request, Response

from gighub.errors import CSRFError


SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
FORM_FIELD = "csrf_token"
HEADER_NAME = "X-CSRF-Token"
_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


class CSRFGuard:
    """Double-submit anti-forgery check.

    The token lives in an HttpOnly cookie and must be echoed back in the
    ``csrf_token`` form field (or the ``X-CSRF-Token`` header) of every
    state-changing request. Paths are exempt only when listed explicitly.
    """

    def __init__(self, cookie_name: str = "csrf_token", exempt_paths: Iterable[str] = (), secure: bool = False) -> None:
        self.cookie_name = cookie_name
        self.secure = secure
        self._exempt_paths = frozenset(_normalize_path(path) for path in exempt_paths)

    def is_exempt(self, path: str) -> bool:
        return _normalize_path(path) in self._exempt_paths

    def token_for(self, request: Request, response: Response) -> str:
        token = request.cookies.get(self.cookie_name)
        if token:
            return token
        return self.rotate(response)

    def rotate(self, response: Response) -> str:
        token = secrets.token_urlsafe(32)
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            httponly=True,
            secure=self.secure,
            samesite="lax",
            path="/",
        )
        return token

    async def protect(self, request: Request) -> None:
        if request.method in SAFE_METHODS or self.is_exempt(request.url.path):
            return

        expected = request.cookies.get(self.cookie_name)
        submitted = request.headers.get(HEADER_NAME)
        if not submitted and request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES):
            form = await request.form()
            value = form.get(FORM_FIELD)
            submitted = value if isinstance(value, str) else None

        if not expected or not submitted:
            raise CSRFError("Missing CSRF token.")
        if not hmac.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8")):
            raise CSRFError("Invalid CSRF token.")
