"""Project-native typed exceptions for adapter failures."""

from __future__ import annotations


class ContainerEngineError(Exception):
    """Base exception for container engine failures."""


class ContainerNotFoundError(ContainerEngineError, LookupError):
    """The addressed container does not exist."""


class ContainerExecError(ContainerEngineError, RuntimeError):
    """In-container command failed; retryable.

    Attributes:
        exit_code: Command exit code when the command ran.
        output: Captured output when available.
    """

    def __init__(self, message: str, exit_code: int | None = None, output: bytes = b""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class CredentialApiError(Exception):
    """Base exception for remote credential API failures.

    Attributes:
        status_code: Optional upstream HTTP status code.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialApiConnectionError(CredentialApiError, ConnectionError):
    """Transport-level connectivity failure during credential API calls."""


class CredentialApiTimeoutError(CredentialApiError, TimeoutError):
    """Credential API request timed out."""


class CredentialRejectedError(CredentialApiError, ValueError):
    """Remote API rejected the supplied token."""
