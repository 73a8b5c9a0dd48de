from gighub.routers.auth import router as auth_router
from gighub.routers.guestbook import router as guestbook_router
from gighub.routers.health import router as health_router
from gighub.routers.oauth import router as oauth_router

__all__ = [
    "auth_router",
    "guestbook_router",
    "health_router",
    "oauth_router",
]
