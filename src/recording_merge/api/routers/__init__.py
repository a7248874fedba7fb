"""API routers (recordings, health)."""

from .health import router as health_router
from .recordings import router as recordings_router

__all__ = ["health_router", "recordings_router"]
