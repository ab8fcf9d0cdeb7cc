"""FastAPI application factory for the stackboot runtime."""

from fastapi import FastAPI

from stackboot.config import AppSettings
from stackboot.db import DatabaseHealthPort
from stackboot.jobs import LifecycleSequencer, TokenCacheService

from .routers import api_create_credentials_router, api_create_health_router, api_create_lifecycle_router


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    lifecycle_sequencer: LifecycleSequencer,
    token_cache_service: TokenCacheService,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Cache store health service used by health endpoints.
        lifecycle_sequencer: Lifecycle sequencer for run trigger execution.
        token_cache_service: Token cache service for credential endpoints.

    Returns:
        FastAPI: Framework application instance.

    Raises:
        ValueError: Raised when a router dependency is missing.
    """
    application = FastAPI(title="stackboot")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        return {
            "service": "stackboot",
            "stack": settings.app_name,
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(api_create_lifecycle_router(lifecycle_sequencer=lifecycle_sequencer))
    application.include_router(api_create_credentials_router(token_cache_service=token_cache_service))

    return application
