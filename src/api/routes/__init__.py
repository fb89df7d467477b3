"""API route modules."""

from .health import router as health_router
from .imports import router as imports_router

__all__ = ["health_router", "imports_router"]
