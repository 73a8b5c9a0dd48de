from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from gighub.auth.tokens import hash_token, utcnow
from gighub.database.models import User
from gighub.database.session import session_scope
from gighub.errors import ConflictError, NotFoundError


class CredentialStore:
    """Owns the ``users`` table: accounts, password hashes, verification state."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_user(
        self,
        email: str,
        password_hash: str,
        verification_token: str | None = None,
        *,
        verified: bool = False,
    ) -> User:
        """Insert a new account; ``verified=True`` stores it already verified, without a token."""
        if verified:
            user = User(email=email, password_hash=password_hash, verification_token=None, verified_at=utcnow())
        else:
            if not verification_token:
                raise ValueError("An unverified account needs a verification token.")
            user = User(
                email=email,
                password_hash=password_hash,
                verification_token=hash_token(verification_token),
                verified_at=None,
            )
        try:
            with session_scope(self._session_factory) as session:
                session.add(user)
                session.flush()
                session.refresh(user)
        except IntegrityError as exc:
            raise ConflictError("Email already registered.") from exc
        return user

    def get_user_by_email(self, email: str) -> User | None:
        with self._session_factory() as session:
            return session.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def get_user(self, user_id: int) -> User | None:
        with self._session_factory() as session:
            return session.get(User, user_id)

    def verify_user(self, token: str) -> int:
        """Consume a verification token and return the id of the verified user.

        Unknown, already used and never issued tokens all raise the same
        NotFoundError so callers cannot tell them apart.
        """
        if not token:
            raise NotFoundError("Invalid or expired token.")

        token_hash = hash_token(token)
        with session_scope(self._session_factory) as session:
            user_id = session.execute(
                select(User.id).where(User.verification_token == token_hash, User.verified_at.is_(None))
            ).scalar_one_or_none()
            if user_id is None:
                raise NotFoundError("Invalid or expired token.")

            # Conditional on the token still being there: a concurrent verify
            # of the same token updates nothing and loses.
            result = session.execute(
                update(User)
                .where(
                    User.id == user_id,
                    User.verification_token == token_hash,
                    User.verified_at.is_(None),
                )
                .values(verification_token=None, verified_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError("Invalid or expired token.")
        return user_id

    def mark_verified(self, user_id: int) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(User)
                .where(User.id == user_id, User.verified_at.is_(None))
                .values(verification_token=None, verified_at=utcnow())
                .execution_options(synchronize_session=False)
            )

    def rotate_verification_token(self, user_id: int, verification_token: str) -> bool:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(User)
                .where(User.id == user_id, User.verified_at.is_(None))
                .values(verification_token=hash_token(verification_token))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
