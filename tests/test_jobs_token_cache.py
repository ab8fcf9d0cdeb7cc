"""Tests for the machine token cache refresh workflow."""

from __future__ import annotations

import pytest

from stackboot.adapters import AccountInfo, CredentialApiConnectionError, CredentialRejectedError
from stackboot.db import InMemoryCacheStore
from stackboot.domain import CredentialValidationError
from stackboot.jobs import TokenCacheService
from stackboot.logging_config import TokenRedactionFilter


class _CredentialApiStub:
    """Credential API double mapping tokens to account emails."""

    def __init__(self, accounts: dict[str, str], error: Exception | None = None):
        self._accounts = accounts
        self._error = error
        self.calls: list[str] = []

    def api_get_account_info(self, token: str) -> AccountInfo:
        self.calls.append(token)
        if self._error is not None:
            raise self._error
        return AccountInfo(email=self._accounts[token])


class _ClockStub:
    def __init__(self, *timestamps: float):
        self._timestamps = list(timestamps)

    def __call__(self) -> float:
        return self._timestamps.pop(0)


def _build_service(
    cache_store: InMemoryCacheStore,
    credential_api: _CredentialApiStub,
    clock: _ClockStub | None = None,
    redaction_filter: TokenRedactionFilter | None = None,
) -> TokenCacheService:
    return TokenCacheService(
        cache_store=cache_store,
        credential_api=credential_api,
        app_name="mystack",
        clock=clock or _ClockStub(1000.0),
        redaction_filter=redaction_filter or TokenRedactionFilter(),
    )


def test_refresh_twice_for_same_identity_keeps_only_newest_token() -> None:
    """Replace an identity's record when a newer token for it is validated.

    Returns:
        None: Assertions validate cache contents.

    Raises:
        AssertionError: Raised when stale records remain.
    """

    cache_store = InMemoryCacheStore()
    service = _build_service(
        cache_store,
        _CredentialApiStub({"T1": "a@x.com", "T2": "a@x.com"}),
        clock=_ClockStub(100.0, 200.0),
    )

    service.token_cache_refresh("T1", "pull")
    result = service.token_cache_refresh("T2", "push")

    assert result.status == "refreshed"
    assert result.trigger == "push"
    assert cache_store.cache_get("platformsh.tokens") == [{"token": "T2", "email": "a@x.com", "date": 200}]
    assert "platformsh.tokens" in cache_store.persisted_keys


def test_refresh_keeps_other_identities_sorted_newest_first() -> None:
    cache_store = InMemoryCacheStore({"platformsh.tokens": [{"token": "OLD", "email": "b@x.com", "date": 50}]})
    service = _build_service(cache_store, _CredentialApiStub({"T1": "a@x.com"}), clock=_ClockStub(100.0))

    result = service.token_cache_refresh("T1", "pull")

    assert [record.email for record in result.tokens] == ["a@x.com", "b@x.com"]
    assert [record.email for record in service.token_cache_get()] == ["a@x.com", "b@x.com"]


def test_refresh_merges_record_into_stack_metadata() -> None:
    cache_store = InMemoryCacheStore({"mystack.meta.cache": {"last_start": 1}})
    service = _build_service(cache_store, _CredentialApiStub({"T1": "a@x.com"}), clock=_ClockStub(100.0))

    service.token_cache_refresh("T1", "pull")

    assert cache_store.cache_get("mystack.meta.cache") == {
        "last_start": 1,
        "token": "T1",
        "email": "a@x.com",
        "date": 100,
    }


def test_rejected_token_raises_validation_error_and_writes_nothing() -> None:
    """Leave the cache untouched when the API rejects the token.

    Returns:
        None: Assertions validate error mapping and cache state.

    Raises:
        AssertionError: Raised when cache state changed.
    """

    existing = [{"token": "T0", "email": "a@x.com", "date": 10}]
    cache_store = InMemoryCacheStore({"platformsh.tokens": existing})
    service = _build_service(
        cache_store,
        _CredentialApiStub({}, error=CredentialRejectedError("refused", status_code=401)),
    )

    with pytest.raises(CredentialValidationError):
        service.token_cache_refresh("BAD", "pull")

    assert cache_store.cache_get("platformsh.tokens") == existing
    assert cache_store.cache_get("mystack.meta.cache") is None


def test_transport_failure_propagates_without_writing() -> None:
    cache_store = InMemoryCacheStore()
    service = _build_service(cache_store, _CredentialApiStub({}, error=CredentialApiConnectionError("down")))

    with pytest.raises(CredentialApiConnectionError):
        service.token_cache_refresh("T1", "push")

    assert cache_store.cache_get("platformsh.tokens") is None


def test_refresh_without_auth_is_skipped() -> None:
    credential_api = _CredentialApiStub({})
    service = _build_service(InMemoryCacheStore(), credential_api)

    result = service.token_cache_refresh(None, "pull")

    assert result.status == "skipped"
    assert result.record is None
    assert credential_api.calls == []


def test_refresh_rejects_unsupported_trigger() -> None:
    service = _build_service(InMemoryCacheStore(), _CredentialApiStub({"T1": "a@x.com"}))

    with pytest.raises(ValueError):
        service.token_cache_refresh("T1", "deploy")


def test_refresh_registers_token_for_log_redaction() -> None:
    redaction_filter = TokenRedactionFilter()
    service = _build_service(
        InMemoryCacheStore(),
        _CredentialApiStub({"SECRET-TOKEN": "a@x.com"}),
        redaction_filter=redaction_filter,
    )

    service.token_cache_refresh("SECRET-TOKEN", "pull")

    assert redaction_filter.filter_redact("using SECRET-TOKEN now") == "using *** now"
