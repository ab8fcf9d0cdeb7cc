"""Typed runtime settings with dotenv support and startup validation."""

import re

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Application settings for the bootstrap lifecycle and its surfaces.

    Environment variable names map directly to field names in uppercase.
    Example: `database_url` reads from `DATABASE_URL`.

    Attributes:
        environment_name: Runtime environment label.
        application_host: Host interface for web server binding.
        application_port: Web server port.
        database_url: SQLAlchemy URL of the persistent cache store.
        app_name: Local stack name; container and cache keys derive from it.
        platform_root: Project root that holds the platform config files.
        platform_app_files: Explicit list of `.platform.app.yaml` paths.
        platform_services_file: Path of `services.yaml`.
        platform_routes_file: Path of `routes.yaml`.
        working_dir: Directory used for the closest-application lookup.
        config_root: Directory receiving per-container run config documents.
        domain_suffix: Local DNS suffix for routes and service hostnames.
        token_component: Component prefix of the token cache key.
        probe_command: In-container OPEN helper command.
        probe_retry_attempts: Phase-1 probe attempts per service.
        probe_backoff_base_seconds: Base retry delay for exponential backoff.
        probe_backoff_max_seconds: Maximum retry delay cap.
        probe_jitter_min_multiplier: Minimum retry jitter multiplier.
        probe_jitter_max_multiplier: Maximum retry jitter multiplier.
        platformsh_accounts_url: OAuth token endpoint base URL.
        platformsh_api_url: Platform.sh REST API base URL.
        platformsh_request_timeout_seconds: HTTP timeout for credential checks.
        log_level: Console log level name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment_name: str = Field(default="development")
    application_host: str = Field(default="127.0.0.1")
    application_port: int = Field(default=8000, ge=1, le=65535)
    database_url: str = Field(default="sqlite:///stackboot-cache.db")
    app_name: str = Field(min_length=1)
    platform_root: str = Field(default=".")
    platform_app_files: list[str] = Field(default_factory=lambda: [".platform.app.yaml"])
    platform_services_file: str = Field(default=".platform/services.yaml")
    platform_routes_file: str = Field(default=".platform/routes.yaml")
    working_dir: str = Field(default=".")
    config_root: str = Field(default=".stackboot/config")
    domain_suffix: str = Field(default="lndo.site", min_length=1)
    token_component: str = Field(default="platformsh", min_length=1)
    probe_command: str = Field(default="/helpers/psh-open.sh", min_length=1)
    probe_retry_attempts: int = Field(default=5, ge=1)
    probe_backoff_base_seconds: float = Field(default=0.5, ge=0)
    probe_backoff_max_seconds: float = Field(default=0.5, gt=0)
    probe_jitter_min_multiplier: float = Field(default=1.0, gt=0)
    probe_jitter_max_multiplier: float = Field(default=1.0, gt=0)
    platformsh_accounts_url: str = Field(default="https://accounts.platform.sh")
    platformsh_api_url: str = Field(default="https://api.platform.sh/api")
    platformsh_request_timeout_seconds: float = Field(default=30.0, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("app_name", "domain_suffix", "token_component", "probe_command")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("probe_backoff_max_seconds")
    @classmethod
    def _validate_backoff_cap_bounds(cls, value: float, info) -> float:
        backoff_base_seconds = float(info.data.get("probe_backoff_base_seconds", 0.5))
        if value < backoff_base_seconds:
            raise ValueError("probe_backoff_max_seconds must be greater than or equal to probe_backoff_base_seconds")
        return value

    @field_validator("probe_jitter_max_multiplier")
    @classmethod
    def _validate_jitter_bounds(cls, value: float, info) -> float:
        jitter_min_multiplier = float(info.data.get("probe_jitter_min_multiplier", 1.0))
        if value < jitter_min_multiplier:
            raise ValueError(
                "probe_jitter_max_multiplier must be greater than or equal to probe_jitter_min_multiplier"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unsupported log_level={value}")
        return normalized_value

    def settings_project_name(self) -> str:
        """Return the container project name derived from `app_name`.

        Returns:
            str: Lowercase alphanumeric project name used in container ids.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        return re.sub(r"[^a-z0-9]", "", self.app_name.lower())


class DatabaseUrlSettings(BaseSettings):
    """Minimal settings model used by migration tooling.

    Attributes:
        database_url: SQLAlchemy URL of the persistent cache store.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    database_url: str = Field(default="sqlite:///stackboot-cache.db")


def config_load_settings() -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when required settings are missing or invalid.
    """

    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_load_database_url() -> str:
    """Load and validate only the database URL setting.

    Returns:
        str: Non-empty database URL for migration and db tooling.

    Raises:
        SettingsLoadError: Raised when database URL cannot be loaded.
    """

    try:
        database_settings = DatabaseUrlSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Database URL configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error

    database_url = str(database_settings.database_url).strip()
    if not database_url:
        raise SettingsLoadError("Database URL configuration validation failed. DATABASE_URL must not be blank.")
    return database_url
