from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse

from gighub.auth.cookies import end_session, start_session
from gighub.auth.csrf import CSRFGuard
from gighub.auth.deps import get_app_settings, get_csrf_guard, get_resolver
from gighub.config import Settings
from gighub.schemas.auth import LoginForm, MessageResponse, ResendVerificationForm, SignupForm
from gighub.services.identity import IdentityResolver
from gighub.utils.html import credentials_form, html_page


router = APIRouter(tags=["auth"])


@router.get("/signup", response_class=HTMLResponse)
def signup_page(
    request: Request,
    response: Response,
    csrf: CSRFGuard = Depends(get_csrf_guard),
) -> str:
    token = csrf.token_for(request, response)
    return html_page("Sign Up", credentials_form("/signup", token, "Sign Up"))


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
def signup(
    form: Annotated[SignupForm, Form()],
    resolver: IdentityResolver = Depends(get_resolver),
) -> dict:
    resolver.signup(form.email, form.password)
    return {"message": "User created! Please check your email to verify your account."}


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    response: Response,
    csrf: CSRFGuard = Depends(get_csrf_guard),
    settings: Settings = Depends(get_app_settings),
) -> str:
    token = csrf.token_for(request, response)
    body = credentials_form("/login", token, "Login")
    if settings.google_enabled:
        body += '\n    <hr>\n    <a href="/auth/google">Login with Google</a>'
    return html_page("Login", body)


@router.post("/login")
def login(
    form: Annotated[LoginForm, Form()],
    request: Request,
    resolver: IdentityResolver = Depends(get_resolver),
) -> RedirectResponse:
    user = resolver.login(form.email, form.password)
    return start_session(request, user.id)


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    return end_session(request)


@router.get("/verify", response_model=MessageResponse)
def verify(token: str = "", resolver: IdentityResolver = Depends(get_resolver)) -> dict:
    token = token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing token.")
    resolver.verify_email(token)
    return {"message": "Email verified successfully! You can now login."}


@router.post("/verify/resend", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse)
def resend_verification(
    form: Annotated[ResendVerificationForm, Form()],
    resolver: IdentityResolver = Depends(get_resolver),
) -> dict:
    resolver.resend_verification(form.email)
    return {"message": "If the account exists and is not yet verified, a new verification email is on its way."}
