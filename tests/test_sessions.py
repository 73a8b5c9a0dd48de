from datetime import timedelta

from sqlalchemy import select

from gighub.auth.passwords import hash_password
from gighub.auth.tokens import hash_token, utcnow
from gighub.database.models import SessionRecord
from gighub.services import sessions as sessions_module
from gighub.services.sessions import SessionManager


def make_user(store, email="a@x.com"):
    return store.create_user(email, hash_password("pw1-secret", rounds=4), "token")


def test_established_session_validates(store, sessions, session_factory):
    user = make_user(store)

    token = sessions.establish(user.id)

    assert sessions.validate(token) == user.id
    with session_factory() as session:
        stored = session.execute(select(SessionRecord.token_hash)).scalars().all()
    assert stored == [hash_token(token)]


def test_destroyed_session_no_longer_validates(store, sessions):
    user = make_user(store)
    token = sessions.establish(user.id)

    sessions.destroy(token)
    sessions.destroy(token)
    sessions.destroy(None)

    assert sessions.validate(token) is None


def test_unknown_tokens_do_not_validate(sessions):
    assert sessions.validate(None) is None
    assert sessions.validate("") is None
    assert sessions.validate("made-up") is None


def test_session_expires_after_its_lifetime(store, sessions, monkeypatch):
    user = make_user(store)
    token = sessions.establish(user.id)
    later = utcnow() + sessions.lifetime + timedelta(seconds=1)

    monkeypatch.setattr(sessions_module, "utcnow", lambda: later)

    assert sessions.validate(token) is None


def test_establish_discards_the_previous_token(store, sessions):
    user = make_user(store)
    planted = sessions.establish(user.id)

    fresh = sessions.establish(user.id, previous_token=planted)

    assert fresh != planted
    assert sessions.validate(planted) is None
    assert sessions.validate(fresh) == user.id


def test_purge_expired_removes_only_stale_rows(store, session_factory):
    user = make_user(store)
    stale = SessionManager(session_factory, lifetime=timedelta(seconds=-1))
    live = SessionManager(session_factory)

    stale.establish(user.id)
    live_token = live.establish(user.id)
    stale.establish(user.id)

    assert live.purge_expired() == 1
    assert live.validate(live_token) == user.id
