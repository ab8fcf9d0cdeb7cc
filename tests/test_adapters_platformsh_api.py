"""Tests for Platform.sh API token validation adapter."""

from __future__ import annotations

import httpx
import pytest

from stackboot.adapters import (
    CredentialApiConnectionError,
    CredentialApiTimeoutError,
    CredentialRejectedError,
    PlatformshApiClient,
)


def _build_client(handler) -> PlatformshApiClient:
    return PlatformshApiClient(
        accounts_url="https://accounts.test",
        api_url="https://api.test/api",
        transport=httpx.MockTransport(handler),
    )


def test_get_account_info_exchanges_token_and_reads_mail() -> None:
    """Exchange the machine token, then read the account with the bearer token.

    Returns:
        None: Assertions validate request flow and parsed account.

    Raises:
        AssertionError: Raised when request flow is wrong.
    """

    seen_requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        if request.url.path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "ACCESS", "token_type": "bearer"})
        return httpx.Response(200, json={"mail": "a@x.com", "display_name": "Ada"})

    account_info = _build_client(handler).api_get_account_info("MACHINE")

    assert account_info.email == "a@x.com"
    assert account_info.display_name == "Ada"
    assert seen_requests[0].method == "POST"
    assert b"grant_type=api_token" in seen_requests[0].content
    assert b"api_token=MACHINE" in seen_requests[0].content
    assert str(seen_requests[1].url) == "https://api.test/api/me"
    assert seen_requests[1].headers["Authorization"] == "Bearer ACCESS"


@pytest.mark.parametrize("status_code", [400, 401, 403])
def test_get_account_info_raises_rejected_for_refused_token(status_code: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": "invalid_grant"})

    with pytest.raises(CredentialRejectedError) as error_info:
        _build_client(handler).api_get_account_info("MACHINE")

    assert error_info.value.status_code == status_code


def test_get_account_info_maps_server_errors_to_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(CredentialApiConnectionError):
        _build_client(handler).api_get_account_info("MACHINE")


def test_get_account_info_maps_transport_timeouts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(CredentialApiTimeoutError):
        _build_client(handler).api_get_account_info("MACHINE")


def test_get_account_info_maps_connect_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CredentialApiConnectionError):
        _build_client(handler).api_get_account_info("MACHINE")


def test_get_account_info_rejects_blank_token() -> None:
    with pytest.raises(ValueError):
        _build_client(lambda request: httpx.Response(200)).api_get_account_info("  ")
