"""Platform.sh API adapter for machine token validation."""

from __future__ import annotations

import logging
from typing import Any, Final

import httpx

from .errors import (
    CredentialApiConnectionError,
    CredentialApiError,
    CredentialApiTimeoutError,
    CredentialRejectedError,
)
from .interfaces import AccountInfo, CredentialApiPort

logger = logging.getLogger(__name__)


class PlatformshApiClient(CredentialApiPort):
    """Exchange a machine token for an access token and fetch the owning account."""

    _CLIENT_ID: Final[str] = "platform-api-user"
    _USER_AGENT: Final[str] = "stackboot/0.1 (Python/httpx)"
    _REJECTED_STATUS_CODES: Final[frozenset[int]] = frozenset({400, 401, 403})

    def __init__(
        self,
        accounts_url: str = "https://accounts.platform.sh",
        api_url: str = "https://api.platform.sh/api",
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize API client.

        Args:
            accounts_url: OAuth server base URL.
            api_url: REST API base URL.
            request_timeout_seconds: HTTP request timeout in seconds.
            transport: Optional httpx transport override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when URLs are blank or timeout is not positive.
        """

        if not accounts_url.strip():
            raise ValueError("accounts_url must not be blank")
        if not api_url.strip():
            raise ValueError("api_url must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._accounts_url = accounts_url.strip().rstrip("/")
        self._api_url = api_url.strip().rstrip("/")
        self._request_timeout_seconds = request_timeout_seconds
        self._transport = transport

    def api_get_account_info(self, token: str) -> AccountInfo:
        """Validate a machine token and return the account that owns it.

        Args:
            token: Platform.sh machine token.

        Returns:
            AccountInfo: Account email and display name.

        Raises:
            ValueError: Raised when token is blank.
            CredentialRejectedError: Raised when the token is refused.
            CredentialApiConnectionError: Raised for transport failures and unexpected statuses.
            CredentialApiTimeoutError: Raised when a request times out.
            CredentialApiError: Raised when the account response lacks an email.
        """

        normalized_token = token.strip()
        if not normalized_token:
            raise ValueError("token must not be blank")

        with httpx.Client(
            timeout=self._request_timeout_seconds,
            transport=self._transport,
            headers={"User-Agent": self._USER_AGENT},
        ) as client:
            token_payload = self._api_request(
                client,
                "POST",
                f"{self._accounts_url}/oauth2/token",
                data={"grant_type": "api_token", "api_token": normalized_token},
                auth=(self._CLIENT_ID, ""),
            )
            access_token = str(token_payload.get("access_token") or "").strip()
            if not access_token:
                raise CredentialRejectedError("token exchange returned no access token")

            account_payload = self._api_request(
                client,
                "GET",
                f"{self._api_url}/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )

        email = str(account_payload.get("mail") or account_payload.get("email") or "").strip()
        if not email:
            raise CredentialApiError("account response did not include an email")
        display_name = account_payload.get("display_name") or account_payload.get("username")
        logger.debug("validated machine token for %s", email)
        return AccountInfo(email=email, display_name=str(display_name) if display_name else None)

    def _api_request(self, client: httpx.Client, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as error:
            raise CredentialApiTimeoutError(f"{method} {url} timed out") from error
        except httpx.TransportError as error:
            raise CredentialApiConnectionError(f"{method} {url} failed") from error

        if response.status_code in self._REJECTED_STATUS_CODES:
            raise CredentialRejectedError(
                f"Platform.sh rejected the token with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise CredentialApiConnectionError(
                f"Platform.sh returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise CredentialApiError(f"{method} {url} returned invalid JSON", status_code=response.status_code) from error
        if not isinstance(payload, dict):
            raise CredentialApiError(f"{method} {url} returned an unexpected payload", status_code=response.status_code)
        return payload
