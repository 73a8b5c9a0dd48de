import pytest

from gighub.auth.passwords import MAX_PASSWORD_BYTES, hash_password, unusable_password_hash, verify_password
from gighub.auth.tokens import hash_token, new_session_token, new_verification_token
from gighub.services.email_service import MailDispatcher, verification_email


def test_hash_and_verify():
    hashed = hash_password("pw1-secret", rounds=4)

    assert hashed != "pw1-secret"
    assert verify_password("pw1-secret", hashed)
    assert not verify_password("pw2-secret", hashed)


def test_passwords_over_the_bcrypt_limit_are_rejected():
    with pytest.raises(ValueError):
        hash_password("é" * (MAX_PASSWORD_BYTES // 2 + 1), rounds=4)


def test_malformed_hash_never_verifies():
    assert not verify_password("pw1-secret", "not-a-bcrypt-hash")


def test_unusable_hash_is_fresh_each_time():
    assert unusable_password_hash(rounds=4) != unusable_password_hash(rounds=4)


def test_tokens_are_random_and_hashed_deterministically():
    assert new_session_token() != new_session_token()
    assert len(new_verification_token()) == 32
    assert hash_token("abc") == hash_token("abc")
    assert len(hash_token("abc")) == 64


def test_verification_email_links_to_base_url():
    subject, body = verification_email("https://gighub.example", "tok")

    assert subject == "Verify your email"
    assert body == "Please verify your email by clicking here: https://gighub.example/verify?token=tok"


def test_dispatcher_reports_success_and_failure(mailer):
    failures = []

    class FlakyMailer:
        def send(self, to, subject, body):
            if to == "bad@x.com":
                raise OSError("connection refused")
            mailer.send(to, subject, body)

    dispatcher = MailDispatcher(FlakyMailer(), max_workers=1, on_failure=lambda to, subject, exc: failures.append(exc))
    try:
        ok = dispatcher.submit("good@x.com", "s", "b")
        bad = dispatcher.submit("bad@x.com", "s", "b")
        assert ok.result(timeout=5) is True
        assert bad.result(timeout=5) is False
    finally:
        dispatcher.shutdown()

    assert [str(exc) for exc in failures] == ["connection refused"]
    assert mailer.sent == [("good@x.com", "s", "b")]
