"""Logging helpers for the stackboot CLI and HTTP runtime.

Console output goes through Rich on stderr. Every handler installed here also
carries a redaction filter so machine tokens passed to credential refresh
never reach a log sink in clear text.
"""

from __future__ import annotations

import logging
import re
import threading

from rich.console import Console
from rich.logging import RichHandler

PROJECT_PREFIX = "stackboot"
REDACTION_PLACEHOLDER = "***"

_KEY_VALUE_SECRET_PATTERN = re.compile(
    r"""(["']?(?:token|auth|api[-_]?token|access[-_]?token)["']?\s*[:=]\s*["']?)[^"'\s,&}]+""",
    re.IGNORECASE,
)
_BEARER_PATTERN = re.compile(r"Bearer\s+[0-9a-zA-Z\-_.~+/]+=*", re.IGNORECASE)


class TokenRedactionFilter(logging.Filter):
    """Mask credential values in log records.

    Known secret values registered at runtime are replaced verbatim; common
    `token=...` / `"token": "..."` / `Bearer ...` shapes are masked by pattern.
    The filter never drops records.
    """

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._secrets: set[str] = set()
        self._lock = threading.Lock()

    def filter_register_secret(self, secret: str) -> None:
        """Register one literal secret value to mask in later records.

        Args:
            secret: Secret value, ignored when blank.

        Returns:
            None: Updates filter state as side effect.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        if secret and secret.strip():
            with self._lock:
                self._secrets.add(secret.strip())

    def filter_redact(self, message: str) -> str:
        """Return `message` with registered secrets and secret-shaped values masked."""

        with self._lock:
            secrets = sorted(self._secrets, key=len, reverse=True)
        for secret in secrets:
            message = message.replace(secret, REDACTION_PLACEHOLDER)
        message = _BEARER_PATTERN.sub(f"Bearer {REDACTION_PLACEHOLDER}", message)
        return _KEY_VALUE_SECRET_PATTERN.sub(rf"\1{REDACTION_PLACEHOLDER}", message)

    def filter(self, record: logging.LogRecord) -> bool:
        redacted_message = self.filter_redact(record.getMessage())
        record.msg = redacted_message
        record.args = None
        return True


_REDACTION_FILTER = TokenRedactionFilter()


def logging_redaction_filter() -> TokenRedactionFilter:
    """Return the process-wide redaction filter shared by installed handlers."""

    return _REDACTION_FILTER


def logging_configure(level: str = "INFO", debug_mode: bool = False, color: bool = True) -> RichHandler:
    """Install a Rich console handler on the root logger.

    Args:
        level: Console level name; overridden to DEBUG in debug mode.
        debug_mode: When True, show timestamps, logger names and source paths.
        color: Enable color output when True.

    Returns:
        RichHandler: The installed handler.

    Raises:
        ValueError: Raised when the level name is unknown.
    """

    resolved_level = logging.DEBUG if debug_mode else logging.getLevelName(level.strip().upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"unsupported log level={level}")

    console = Console(color_system="auto" if color else None, stderr=True)
    handler = RichHandler(
        level=resolved_level,
        console=console,
        rich_tracebacks=True,
        show_time=debug_mode,
        show_path=debug_mode,
    )
    fmt = "%(message)s" if not debug_mode else "%(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(fmt=fmt))
    handler.addFilter(_REDACTION_FILTER)

    root_logger = logging.getLogger()
    for existing_handler in list(root_logger.handlers):
        if isinstance(existing_handler, RichHandler):
            root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(resolved_level)
    logging.getLogger(PROJECT_PREFIX).setLevel(resolved_level)
    return handler
