from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from gighub.auth.passwords import MAX_PASSWORD_BYTES


def _is_valid_email(value: str) -> bool:
    if "@" not in value:
        return False
    local, _, domain = value.partition("@")
    return bool(local) and "." in domain


def _normalize_email(value: str) -> str:
    # Emails are matched exactly as stored; only surrounding whitespace goes.
    email = value.strip()
    if not _is_valid_email(email):
        raise ValueError("A valid email is required.")
    return email


class SignupForm(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return value


class LoginForm(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=256)

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str) -> str:
        return value.strip()


class ResendVerificationForm(BaseModel):
    email: str = Field(max_length=320)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)


class MessageResponse(BaseModel):
    message: str
