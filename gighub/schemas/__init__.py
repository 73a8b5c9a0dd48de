from gighub.schemas.auth import LoginForm, MessageResponse, ResendVerificationForm, SignupForm
from gighub.schemas.guestbook import GuestbookForm

__all__ = [
    "GuestbookForm",
    "LoginForm",
    "MessageResponse",
    "ResendVerificationForm",
    "SignupForm",
]
