"""API router package for endpoint composition."""

from .credentials import api_create_credentials_router
from .health import api_create_health_router
from .lifecycle import api_create_lifecycle_router

__all__ = ["api_create_credentials_router", "api_create_health_router", "api_create_lifecycle_router"]
