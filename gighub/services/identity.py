from __future__ import annotations

from gighub.auth.passwords import hash_password, unusable_password_hash, verify_password
from gighub.auth.providers import ProviderIdentity
from gighub.auth.tokens import new_verification_token
from gighub.config import Settings
from gighub.database.models import User
from gighub.errors import AuthError, ConflictError
from gighub.services.credentials import CredentialStore
from gighub.services.email_service import MailDispatcher, verification_email
from gighub.utils.logging import logger


class IdentityResolver:
    """Turns signups, password logins and OAuth callbacks into a ``User``."""

    def __init__(self, store: CredentialStore, dispatcher: MailDispatcher, settings: Settings) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._base_url = settings.base_url
        self._rounds = settings.bcrypt_rounds
        # Compared against when the email is unknown so that path costs a bcrypt check too.
        self._dummy_hash = unusable_password_hash(rounds=self._rounds)

    def signup(self, email: str, password: str) -> User:
        password_hash = hash_password(password, rounds=self._rounds)
        token = new_verification_token()
        user = self._store.create_user(email, password_hash, token)
        logger.info("Created user id=%s", user.id)
        self._send_verification(user.email, token)
        return user

    def login(self, email: str, password: str) -> User:
        user = self._store.get_user_by_email(email)
        if user is None:
            verify_password(password, self._dummy_hash)
            raise AuthError()
        password_ok = verify_password(password, user.password_hash)
        if not password_ok or not user.is_verified:
            raise AuthError()
        return user

    def verify_email(self, token: str) -> int:
        user_id = self._store.verify_user(token)
        logger.info("Verified user id=%s", user_id)
        return user_id

    def resend_verification(self, email: str) -> None:
        user = self._store.get_user_by_email(email)
        if user is None or user.is_verified:
            return
        token = new_verification_token()
        if self._store.rotate_verification_token(user.id, token):
            self._send_verification(user.email, token)

    def resolve_oauth(self, identity: ProviderIdentity) -> User:
        """Find or create the account for a provider-verified email.

        Providers only reach this point after verifying the address
        themselves, so unverified local accounts are verified here instead of
        blocking the login.
        """
        if not identity.email_verified:
            raise AuthError("Provider email not verified.")

        user = self._store.get_user_by_email(identity.email)
        if user is None:
            user = self._create_oauth_user(identity)
        elif not user.is_verified:
            self._store.mark_verified(user.id)
        else:
            return user
        return self._store.get_user(user.id) or user

    def _create_oauth_user(self, identity: ProviderIdentity) -> User:
        try:
            user = self._store.create_user(
                identity.email,
                unusable_password_hash(rounds=self._rounds),
                verified=True,
            )
        except ConflictError:
            # A concurrent callback created the account first; retry once as a read.
            existing = self._store.get_user_by_email(identity.email)
            if existing is None:
                raise
            logger.info("Concurrent %s signup, using existing user id=%s", identity.provider.value, existing.id)
            if not existing.is_verified:
                self._store.mark_verified(existing.id)
            return existing
        logger.info(
            "Created user id=%s via %s (subject=%s)",
            user.id,
            identity.provider.value,
            identity.subject or "unknown",
        )
        return user

    def _send_verification(self, email: str, token: str) -> None:
        subject, body = verification_email(self._base_url, token)
        try:
            self._dispatcher.submit(email, subject, body)
            logger.info("Queued verification email to %s", email)
        except RuntimeError as exc:
            # Executor already shut down; the account stays and can request a resend.
            logger.warning("Could not queue verification email: %s", exc)
