"""gighub: guestbook with accounts, sessions and CSRF protection."""

__version__ = "1.0.0"
