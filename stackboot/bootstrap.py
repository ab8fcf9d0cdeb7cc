"""Application bootstrap wiring for startup validation and dependency assembly."""

from fastapi import FastAPI

from stackboot.adapters import DockerContainerEngine, PlatformshApiClient, RetryStrategy, YamlConfigSource
from stackboot.api import create_api_application
from stackboot.config import AppSettings, config_load_settings
from stackboot.db import SQLAlchemyCacheStore, SQLAlchemyDatabaseHealthService, db_create_engine
from stackboot.jobs import (
    BootstrapOrchestrator,
    BootstrapOrchestratorConfig,
    LifecycleConfig,
    LifecycleSequencer,
    RunConfigBuilder,
    TokenCacheService,
)


def bootstrap_create_lifecycle_sequencer(settings: AppSettings, cache_store: SQLAlchemyCacheStore) -> LifecycleSequencer:
    """Build the lifecycle sequencer and its adapters from settings.

    Args:
        settings: Validated runtime settings.
        cache_store: Persistent cache store shared with other services.

    Returns:
        LifecycleSequencer: Fully wired lifecycle sequencer.

    Raises:
        ValueError: Raised when wired components reject their configuration.
    """

    project_name = settings.settings_project_name()
    container_engine = DockerContainerEngine(
        retry_strategy=RetryStrategy(
            backoff_base_seconds=settings.probe_backoff_base_seconds,
            max_backoff_seconds=settings.probe_backoff_max_seconds,
            jitter_min_multiplier=settings.probe_jitter_min_multiplier,
            jitter_max_multiplier=settings.probe_jitter_max_multiplier,
        ),
    )
    orchestrator = BootstrapOrchestrator(
        container_engine=container_engine,
        cache_store=cache_store,
        config=BootstrapOrchestratorConfig(
            stack_name=settings.app_name,
            project_name=project_name,
            domain_suffix=settings.domain_suffix,
            probe_command=settings.probe_command,
            probe_attempts=settings.probe_retry_attempts,
        ),
    )
    return LifecycleSequencer(
        config_source=YamlConfigSource(
            platform_root=settings.platform_root,
            app_files=settings.platform_app_files,
            services_file=settings.platform_services_file,
            routes_file=settings.platform_routes_file,
        ),
        container_engine=container_engine,
        cache_store=cache_store,
        orchestrator=orchestrator,
        run_config_builder=RunConfigBuilder(config_root=settings.config_root),
        config=LifecycleConfig(
            stack_name=settings.app_name,
            project_name=project_name,
            domain_suffix=settings.domain_suffix,
            platform_root=settings.platform_root,
            working_dir=settings.working_dir,
        ),
    )


def bootstrap_create_token_cache_service(settings: AppSettings, cache_store: SQLAlchemyCacheStore) -> TokenCacheService:
    """Build the token cache service with the Platform.sh API client."""

    return TokenCacheService(
        cache_store=cache_store,
        credential_api=PlatformshApiClient(
            accounts_url=settings.platformsh_accounts_url,
            api_url=settings.platformsh_api_url,
            request_timeout_seconds=settings.platformsh_request_timeout_seconds,
        ),
        app_name=settings.app_name,
        component=settings.token_component,
    )


def bootstrap_create_application() -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    settings = config_load_settings()
    engine = db_create_engine(database_url=settings.database_url)
    cache_store = SQLAlchemyCacheStore(engine=engine)
    return create_api_application(
        settings=settings,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
        lifecycle_sequencer=bootstrap_create_lifecycle_sequencer(settings, cache_store),
        token_cache_service=bootstrap_create_token_cache_service(settings, cache_store),
    )
