from __future__ import annotations

from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from gighub.auth.tokens import hash_token, new_session_token, utcnow
from gighub.database.models import SessionRecord
from gighub.database.session import session_scope


DEFAULT_LIFETIME = timedelta(hours=24)


class SessionManager:
    """Issues, validates and destroys login sessions.

    Only SHA-256 digests of session tokens are stored; the raw token lives in
    the client's cookie.
    """

    def __init__(self, session_factory: sessionmaker[Session], lifetime: timedelta = DEFAULT_LIFETIME) -> None:
        self._session_factory = session_factory
        self.lifetime = lifetime

    def establish(self, user_id: int, previous_token: str | None = None) -> str:
        """Start a session for ``user_id`` and return the raw token.

        Any session the client already carried is deleted first, so a token
        planted before authentication is worthless afterwards.
        """
        now = utcnow()
        token = new_session_token()
        with session_scope(self._session_factory) as session:
            if previous_token:
                session.execute(delete(SessionRecord).where(SessionRecord.token_hash == hash_token(previous_token)))
            session.execute(delete(SessionRecord).where(SessionRecord.expiry <= now))
            session.add(
                SessionRecord(
                    token_hash=hash_token(token),
                    user_id=user_id,
                    expiry=now + self.lifetime,
                )
            )
        return token

    def validate(self, token: str | None) -> int | None:
        if not token:
            return None
        with self._session_factory() as session:
            return session.execute(
                select(SessionRecord.user_id).where(
                    SessionRecord.token_hash == hash_token(token),
                    SessionRecord.expiry > utcnow(),
                )
            ).scalar_one_or_none()

    def destroy(self, token: str | None) -> None:
        if not token:
            return
        with session_scope(self._session_factory) as session:
            session.execute(delete(SessionRecord).where(SessionRecord.token_hash == hash_token(token)))

    def purge_expired(self) -> int:
        with session_scope(self._session_factory) as session:
            result = session.execute(delete(SessionRecord).where(SessionRecord.expiry <= utcnow()))
            return result.rowcount
