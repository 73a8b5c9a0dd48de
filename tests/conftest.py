from __future__ import annotations

import os
import tempfile
import threading

# The module-level app in gighub.main reads the environment on import.
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="gighub-tests-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from gighub.auth.providers import Provider, ProviderIdentity
from gighub.config import load_settings
from gighub.database.migrate import run_migrations
from gighub.database.session import create_db_engine, make_session_factory
from gighub.errors import AuthError, DeliveryError
from gighub.main import create_app
from gighub.services.credentials import CredentialStore
from gighub.services.email_service import MailDispatcher
from gighub.services.identity import IdentityResolver
from gighub.services.sessions import SessionManager


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self._condition = threading.Condition()

    def send(self, to: str, subject: str, body: str) -> None:
        with self._condition:
            self.sent.append((to, subject, body))
            self._condition.notify_all()

    def wait_for(self, count: int, timeout: float = 5.0) -> list[tuple[str, str, str]]:
        with self._condition:
            self._condition.wait_for(lambda: len(self.sent) >= count, timeout=timeout)
            return list(self.sent)

    def last_token(self) -> str:
        _, _, body = self.sent[-1]
        return body.rsplit("token=", 1)[1].strip()


class FailingMailer:
    def send(self, to: str, subject: str, body: str) -> None:
        raise DeliveryError("SMTP environment variables are not set.")


class FakeProvider:
    name = Provider.GOOGLE
    valid_code = "good-code"

    def __init__(self, email: str = "oauth@example.com", email_verified: bool = True) -> None:
        self.email = email
        self.email_verified = email_verified

    def begin_auth(self, state: str) -> str:
        return f"https://provider.test/authorize?state={state}"

    def complete_auth(self, code: str) -> ProviderIdentity:
        if code != self.valid_code:
            raise AuthError("Google rejected the authorization code.")
        return ProviderIdentity(provider=self.name, email=self.email, email_verified=self.email_verified)


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        {
            "DATA_DIR": str(tmp_path),
            "BCRYPT_ROUNDS": "4",
            "BASE_URL": "http://testserver",
            "LOG_LEVEL": "WARNING",
        }
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def migrated_engine(engine):
    run_migrations(engine)
    return engine


@pytest.fixture
def session_factory(migrated_engine):
    return make_session_factory(migrated_engine)


@pytest.fixture
def store(session_factory):
    return CredentialStore(session_factory)


@pytest.fixture
def sessions(session_factory):
    return SessionManager(session_factory)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def dispatcher(mailer):
    dispatcher = MailDispatcher(mailer, max_workers=2)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def resolver(store, dispatcher, settings):
    return IdentityResolver(store, dispatcher, settings)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def app(settings, engine, mailer, provider):
    return create_app(settings, engine=engine, mailer=mailer, providers={Provider.GOOGLE: provider})


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
