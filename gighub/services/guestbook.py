from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session, sessionmaker

from gighub.database.models import GuestbookEntry
from gighub.database.session import session_scope


DEFAULT_MESSAGE = "Hello! Welcome to the guestbook."
# The guestbook holds a single message, always stored under this id.
MESSAGE_ID = 1


class GuestbookStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_message(self) -> str | None:
        with self._session_factory() as session:
            return session.execute(
                select(GuestbookEntry.message).where(GuestbookEntry.id == MESSAGE_ID)
            ).scalar_one_or_none()

    def upsert_message(self, message: str) -> None:
        statement = insert(GuestbookEntry).values(id=MESSAGE_ID, message=message)
        statement = statement.on_conflict_do_update(
            index_elements=[GuestbookEntry.id],
            set_={"message": statement.excluded.message},
        )
        with session_scope(self._session_factory) as session:
            session.execute(statement)
