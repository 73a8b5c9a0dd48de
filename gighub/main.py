from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.engine import Engine

from gighub import __version__
from gighub.auth.csrf import CSRFGuard
from gighub.auth.deps import csrf_protect
from gighub.auth.providers import IdentityProvider, Provider, build_providers
from gighub.config import Settings, get_settings
from gighub.database.migrate import run_migrations
from gighub.database.session import make_session_factory, setup_engine
from gighub.errors import AuthError, ConflictError, CSRFError, LoginRequired, NotFoundError
from gighub.routers import auth_router, guestbook_router, health_router, oauth_router
from gighub.services.credentials import CredentialStore
from gighub.services.email_service import Mailer, MailDispatcher, SmtpMailer
from gighub.services.guestbook import GuestbookStore
from gighub.services.identity import IdentityResolver
from gighub.services.sessions import SessionManager
from gighub.utils.logging import logger, setup_logging


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid or expired token."})

    @app.exception_handler(AuthError)
    async def auth_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(exc)})

    @app.exception_handler(CSRFError)
    async def csrf_handler(request: Request, exc: CSRFError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
        return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    mailer: Mailer | None = None,
    providers: Mapping[Provider, IdentityProvider] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    engine = engine or setup_engine(settings)
    session_factory = make_session_factory(engine)
    dispatcher = MailDispatcher(mailer or SmtpMailer(settings), max_workers=settings.mail_workers)
    store = CredentialStore(session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Schema must be current before the first request touches the store.
        run_migrations(engine)
        logger.info("%s ready (env=%s)", settings.app_name, settings.environment)
        try:
            yield
        finally:
            dispatcher.shutdown(wait=True)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        dependencies=[Depends(csrf_protect)],
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.dispatcher = dispatcher
    app.state.store = store
    app.state.resolver = IdentityResolver(store, dispatcher, settings)
    app.state.sessions = SessionManager(session_factory, timedelta(hours=settings.session_lifetime_hours))
    app.state.csrf = CSRFGuard(
        cookie_name=settings.csrf_cookie_name,
        exempt_paths=settings.csrf_exempt_paths,
        secure=settings.is_production,
    )
    app.state.guestbook = GuestbookStore(session_factory)
    app.state.providers = dict(providers) if providers is not None else build_providers(settings)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(oauth_router)
    app.include_router(guestbook_router)

    return app


app = create_app()
