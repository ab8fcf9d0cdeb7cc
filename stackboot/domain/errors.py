"""Project-native typed exceptions for bootstrap lifecycle failures."""

from __future__ import annotations


class StackbootError(Exception):
    """Base exception for lifecycle-level failures.

    Attributes:
        error_code: Deterministic error code recorded in diagnostics.
    """

    error_code = "STACKBOOT_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class ConfigError(StackbootError, ValueError):
    """No valid application definitions were found; aborts the run."""

    error_code = "CONFIG_ERROR"


class RelationshipUnresolvedError(StackbootError, LookupError):
    """An application references a relationship with no matching service."""

    error_code = "RELATIONSHIP_UNRESOLVED"

    def __init__(self, message: str, app: str, alias: str):
        super().__init__(message)
        self.app = app
        self.alias = alias


class ProbeParseError(StackbootError, ValueError):
    """Phase-1 probe output is not valid structured endpoint data."""

    error_code = "PROBE_PARSE_ERROR"

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output


class ProbeExecutionError(StackbootError, RuntimeError):
    """Phase-2 probe execution failed for one application server."""

    error_code = "PROBE_EXECUTION_ERROR"


class CredentialValidationError(StackbootError, ValueError):
    """Remote credential API rejected a supplied token."""

    error_code = "CREDENTIAL_VALIDATION_ERROR"
