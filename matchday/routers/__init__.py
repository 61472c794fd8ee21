"""API routers."""

from matchday.routers.health import router as health_router
from matchday.routers.passkeys import router as passkeys_router

__all__ = [
    "health_router",
    "passkeys_router",
]
