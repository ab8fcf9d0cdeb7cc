"""Machine token cache refreshed after `pull` and `push` commands."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Final

from stackboot.adapters import CredentialApiPort, CredentialRejectedError
from stackboot.db import CacheStorePort
from stackboot.domain import CredentialRecord, CredentialValidationError
from stackboot.domain.tokens import (
    domain_merge_credentials,
    domain_parse_credential_payloads,
    domain_serialize_credentials,
)
from stackboot.logging_config import TokenRedactionFilter, logging_redaction_filter

from .interfaces import TokenRefreshResult

logger = logging.getLogger(__name__)

REFRESH_TRIGGERS: Final[tuple[str, ...]] = ("pull", "push")


class TokenCacheService:
    """Validate machine tokens and keep the persisted token list current.

    Both refresh triggers share one lock, and the stored list is re-read
    inside it right before the merged list is written, so concurrent
    refreshes never drop each other's record.
    """

    _REFRESH_LOCK = threading.Lock()

    def __init__(
        self,
        cache_store: CacheStorePort,
        credential_api: CredentialApiPort,
        app_name: str,
        component: str = "platformsh",
        clock: Callable[[], float] = time.time,
        redaction_filter: TokenRedactionFilter | None = None,
    ):
        """Initialize token cache service.

        Args:
            cache_store: Persistent cache store.
            credential_api: Remote credential validation port.
            app_name: Local stack name used for the metadata key.
            component: Component prefix of the token cache key.
            clock: Epoch seconds provider.
            redaction_filter: Log filter that learns refreshed tokens.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or names are invalid.
        """

        if cache_store is None:
            raise ValueError("cache_store must not be None")
        if credential_api is None:
            raise ValueError("credential_api must not be None")
        if not app_name.strip():
            raise ValueError("app_name must not be blank")
        if not component.strip():
            raise ValueError("component must not be blank")

        self._cache_store = cache_store
        self._credential_api = credential_api
        self._app_name = app_name.strip()
        self._component = component.strip()
        self._clock = clock
        self._redaction_filter = redaction_filter or logging_redaction_filter()

    @property
    def token_cache_key(self) -> str:
        return f"{self._component}.tokens"

    @property
    def token_meta_key(self) -> str:
        return f"{self._app_name}.meta.cache"

    def token_cache_get(self) -> list[CredentialRecord]:
        """Return cached credential records, newest first; empty when nothing is cached."""

        return domain_parse_credential_payloads(self._cache_store.cache_get(self.token_cache_key))

    def token_cache_merge(self, incoming: list[CredentialRecord]) -> list[CredentialRecord]:
        """Merge records into the persisted token list.

        Args:
            incoming: Newly validated records.

        Returns:
            list[CredentialRecord]: Persisted list after the merge.

        Raises:
            RuntimeError: Raised when the cache store write fails.
        """

        with self._REFRESH_LOCK:
            existing = self.token_cache_get()
            merged = domain_merge_credentials(existing, incoming)
            self._cache_store.cache_set(self.token_cache_key, domain_serialize_credentials(merged), persist=True)
        return merged

    def token_cache_refresh(self, auth: str | None, trigger: str) -> TokenRefreshResult:
        """Validate `auth` and record it as the newest token of its account.

        Args:
            auth: Machine token supplied to the command; refresh is a no-op when empty.
            trigger: `pull` or `push`.

        Returns:
            TokenRefreshResult: Refresh status and the cached list afterwards.

        Raises:
            ValueError: Raised when trigger is unsupported.
            CredentialValidationError: Raised when the remote API rejects the token.
            CredentialApiError: Raised for transport failures; nothing is written.
        """

        normalized_trigger = trigger.strip().lower()
        if normalized_trigger not in REFRESH_TRIGGERS:
            raise ValueError(f"unsupported trigger={trigger}")

        normalized_auth = (auth or "").strip()
        if not normalized_auth:
            logger.debug("post-%s credential refresh skipped, no token supplied", normalized_trigger)
            return TokenRefreshResult(
                status="skipped",
                trigger=normalized_trigger,
                tokens=tuple(self.token_cache_get()),
            )

        self._redaction_filter.filter_register_secret(normalized_auth)
        try:
            account_info = self._credential_api.api_get_account_info(normalized_auth)
        except CredentialRejectedError as error:
            raise CredentialValidationError(f"machine token was rejected: {error}") from error

        record = CredentialRecord(
            token=normalized_auth,
            email=account_info.email,
            date=int(self._clock()),
        )
        merged = self.token_cache_merge([record])

        with self._REFRESH_LOCK:
            metadata = self._cache_store.cache_get(self.token_meta_key)
            merged_metadata = {**(metadata if isinstance(metadata, dict) else {}), **record.credential_to_payload()}
            self._cache_store.cache_set(self.token_meta_key, merged_metadata, persist=True)

        logger.info("updated machine token for %s after %s", account_info.email, normalized_trigger)
        return TokenRefreshResult(
            status="refreshed",
            trigger=normalized_trigger,
            record=record,
            tokens=tuple(merged),
        )
