import pytest
from sqlalchemy import delete, func, select

from gighub.auth.passwords import hash_password, verify_password
from gighub.auth.tokens import hash_token
from gighub.database.models import SessionRecord, User
from gighub.database.session import session_scope
from gighub.errors import ConflictError, NotFoundError


def test_create_user_stores_only_the_token_digest(store):
    user = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "raw-token")

    assert user.id is not None
    assert user.verification_token == hash_token("raw-token")
    assert user.verification_token != "raw-token"
    assert not user.is_verified


def test_duplicate_email_conflicts_and_keeps_first_record(store):
    first = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token-1")

    with pytest.raises(ConflictError):
        store.create_user("a@x.com", hash_password("pw2-secret", rounds=4), "token-2")

    stored = store.get_user_by_email("a@x.com")
    assert stored.id == first.id
    assert verify_password("pw1-secret", stored.password_hash)
    assert not verify_password("pw2-secret", stored.password_hash)


def test_email_lookup_is_exact(store):
    store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token")

    assert store.get_user_by_email("A@x.com") is None
    assert store.get_user_by_email("nobody@x.com") is None


def test_verification_token_is_single_use(store):
    user = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token")

    assert store.verify_user("token") == user.id
    verified = store.get_user(user.id)
    assert verified.is_verified
    assert verified.verification_token is None

    with pytest.raises(NotFoundError):
        store.verify_user("token")


@pytest.mark.parametrize("token", ["", "never-issued"])
def test_unknown_tokens_are_rejected(store, token):
    store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token")

    with pytest.raises(NotFoundError, match="Invalid or expired token."):
        store.verify_user(token)


def test_mark_verified_is_idempotent(store):
    user = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token")

    store.mark_verified(user.id)
    first_verified_at = store.get_user(user.id).verified_at
    store.mark_verified(user.id)

    assert store.get_user(user.id).verified_at == first_verified_at
    with pytest.raises(NotFoundError):
        store.verify_user("token")


def test_rotate_verification_token_replaces_the_old_one(store):
    user = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "old")

    assert store.rotate_verification_token(user.id, "new")
    with pytest.raises(NotFoundError):
        store.verify_user("old")
    assert store.verify_user("new") == user.id

    assert not store.rotate_verification_token(user.id, "newer")


def test_deleting_a_user_removes_their_sessions(store, sessions, session_factory):
    user = store.create_user("a@x.com", hash_password("pw1-secret", rounds=4), "token")
    token = sessions.establish(user.id)

    with session_scope(session_factory) as session:
        session.execute(delete(User).where(User.id == user.id))

    assert sessions.validate(token) is None
    with session_factory() as session:
        assert session.execute(select(func.count()).select_from(SessionRecord)).scalar_one() == 0


def test_create_verified_user_has_no_token(store):
    user = store.create_user("o@x.com", hash_password("pw1-secret", rounds=4), verified=True)

    stored = store.get_user(user.id)
    assert stored.is_verified
    assert stored.verification_token is None


def test_unverified_user_needs_a_token(store):
    with pytest.raises(ValueError):
        store.create_user("a@x.com", hash_password("pw1-secret", rounds=4))

    assert store.get_user_by_email("a@x.com") is None
