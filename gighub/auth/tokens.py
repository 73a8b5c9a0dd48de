from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def new_verification_token() -> str:
    # 128 bits, hex encoded so it survives being pasted into a URL.
    return secrets.token_hex(16)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite DATETIME columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
