"""Typed interfaces for adapter-layer responsibilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from stackboot.domain import Application, RawPlatformConfig

CAPTURE_STDOUT = "stdout"
CAPTURE_STDOUT_STDERR = "stdout+stderr"


@dataclass(frozen=True)
class ContainerInspection:
    """Live container facts returned by engine inspection.

    Attributes:
        container_id: Inspected container id or name.
        running: Whether the container is confirmed running.
        networks: Network alias to IP address mapping.
    """

    container_id: str
    running: bool
    networks: dict[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True)
class ContainerExecOptions:
    """Options for one in-container command execution.

    Attributes:
        services: Target service names (diagnostics only).
        user: User the command runs as.
        capture: `stdout` or `stdout+stderr`.
        silent: When False, captured output is logged at info level.
        attempts: Total attempts; 1 is single-attempt mode.
    """

    services: tuple[str, ...] = ()
    user: str = "root"
    capture: str = CAPTURE_STDOUT
    silent: bool = True
    attempts: int = 1


@dataclass(frozen=True)
class AccountInfo:
    """Remote account identity returned by credential validation.

    Attributes:
        email: Account identity.
        display_name: Optional display name.
    """

    email: str
    display_name: str | None = None


class ContainerEnginePort(Protocol):
    """Port definition for container inspection and command execution."""

    async def engine_inspect(self, container_id: str) -> ContainerInspection:
        """Inspect one container.

        Args:
            container_id: Container id or name.

        Returns:
            ContainerInspection: Live facts for the container.

        Raises:
            ContainerNotFoundError: Raised when the container does not exist.
            ContainerEngineError: Raised when the engine cannot be reached.
        """

    async def engine_exec(self, container_id: str, command: list[str], options: ContainerExecOptions) -> bytes:
        """Execute one command inside a container and capture its output.

        Args:
            container_id: Container id or name.
            command: Command argv.
            options: Execution options including the retry mode.

        Returns:
            bytes: Captured output.

        Raises:
            ContainerExecError: Raised when every attempt failed.
            ContainerNotFoundError: Raised when the container does not exist.
        """


class CredentialApiPort(Protocol):
    """Port definition for remote credential validation."""

    def api_get_account_info(self, token: str) -> AccountInfo:
        """Validate a machine token and return its account identity.

        Args:
            token: Machine token to validate.

        Returns:
            AccountInfo: Account identity owning the token.

        Raises:
            CredentialRejectedError: Raised when the remote API rejects the token.
            CredentialApiConnectionError: Raised for transport failures.
            CredentialApiTimeoutError: Raised when the request times out.
        """


class ConfigSourcePort(Protocol):
    """Port definition for raw declarative config loading."""

    def config_source_load(self) -> RawPlatformConfig:
        """Load raw application, service and route declarations.

        Returns:
            RawPlatformConfig: Raw parsed declarations.

        Raises:
            ConfigError: Raised when a declared file cannot be parsed.
        """

    def config_source_find_closest_application(self, start_dir: str) -> Application:
        """Return the application whose config directory is the nearest ancestor of `start_dir`.

        Args:
            start_dir: Working directory to start the lookup from.

        Returns:
            Application: Closest application.

        Raises:
            ConfigError: Raised when no application config lies above `start_dir`.
        """
