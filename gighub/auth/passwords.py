from __future__ import annotations

import secrets

import bcrypt


# bcrypt only looks at the first 72 bytes; longer inputs are rejected upstream.
MAX_PASSWORD_BYTES = 72
DEFAULT_ROUNDS = 10


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def unusable_password_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash of 32 random bytes nobody knows, for accounts created through OAuth."""
    return hash_password(secrets.token_urlsafe(32), rounds=rounds)
