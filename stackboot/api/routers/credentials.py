"""Credential API router composition for machine token cache endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stackboot.adapters import CredentialApiError, CredentialApiTimeoutError
from stackboot.domain import CredentialValidationError
from stackboot.jobs import TokenCacheService


class CredentialRefreshRequest(BaseModel):
    """Request body for one credential refresh."""

    auth: str | None = None
    trigger: str = "pull"


def api_create_credentials_router(token_cache_service: TokenCacheService) -> APIRouter:
    """Create credential router exposing cached identities and refresh.

    Token values are never returned; only account identities and dates.

    Args:
        token_cache_service: Job-layer token cache service.

    Returns:
        APIRouter: Router exposing credential APIs.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if token_cache_service is None:
        raise ValueError("token_cache_service must not be None")

    router = APIRouter(prefix="/credentials", tags=["credentials"])

    @router.get("/tokens")
    def api_credentials_tokens() -> JSONResponse:
        records = token_cache_service.token_cache_get()
        payload = {"tokens": [{"email": record.email, "date": record.date} for record in records]}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/refresh")
    def api_credentials_refresh(request: CredentialRefreshRequest) -> JSONResponse:
        """Validate a machine token and merge it into the token cache.

        Returns:
            JSONResponse: Refresh status and cached identities.

        Raises:
            RuntimeError: Raised when the cache store write fails.
        """

        try:
            refresh_result = token_cache_service.token_cache_refresh(auth=request.auth, trigger=request.trigger)
        except CredentialValidationError as error:
            payload = {"status": "error", "error_code": error.error_code, "message": str(error)}
            return JSONResponse(content=payload, status_code=status.HTTP_401_UNAUTHORIZED)
        except ValueError as error:
            payload = {"status": "error", "message": str(error)}
            return JSONResponse(content=payload, status_code=status.HTTP_400_BAD_REQUEST)
        except CredentialApiTimeoutError as error:
            payload = {"status": "error", "message": str(error)}
            return JSONResponse(content=payload, status_code=status.HTTP_504_GATEWAY_TIMEOUT)
        except CredentialApiError as error:
            payload = {"status": "error", "message": str(error)}
            return JSONResponse(content=payload, status_code=status.HTTP_502_BAD_GATEWAY)

        payload = {
            "status": refresh_result.status,
            "trigger": refresh_result.trigger,
            "email": refresh_result.record.email if refresh_result.record is not None else None,
            "tokens": [{"email": record.email, "date": record.date} for record in refresh_result.tokens],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
