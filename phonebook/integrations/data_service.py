"""Async client for the remote table data service (PostgREST + GoTrue wire shape).

Row ownership, uniqueness and per-identity record caps are enforced by the
service itself. This module only transports requests, keeps the identity
session, and turns failures into DataServiceError.
"""

import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel

from ..config import settings

logger = logging.getLogger(__name__)

PERMISSION_DENIED_CODE = "42501"


class DataServiceError(Exception):
    """Raised when the data service rejects a request."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class DataServiceUnavailable(DataServiceError):
    """Raised on network failures and 5xx responses."""

    pass


class AuthSession(BaseModel):
    """Identity context issued by the data service."""

    access_token: str
    refresh_token: str = ""
    user_id: str = ""
    expires_at: float = 0.0

    def is_expired(self, now: float | None = None) -> bool:
        if not self.expires_at:
            return False
        return (now if now is not None else time.time()) >= self.expires_at


def create_http_client() -> httpx.AsyncClient:
    """Factory: shared HTTP client for the application lifespan."""
    return httpx.AsyncClient(timeout=settings.request_timeout)


def _error_from_response(response: httpx.Response) -> DataServiceError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or f"HTTP {response.status_code}"
    )
    code = body.get("code") or body.get("error_code")
    return DataServiceError(str(message), status_code=response.status_code, code=str(code) if code else None)


class TableDataService:
    """Table CRUD and anonymous identity against the data service.

    One instance per caller identity; the underlying httpx client is shared.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: AuthSession | None = None,
        *,
        rest_url: str | None = None,
        auth_url: str | None = None,
        api_key: str | None = None,
    ) -> None:
        self._http = http
        self.session = session
        self.rest_url = (rest_url or settings.rest_url).rstrip("/")
        self.auth_url = (auth_url or settings.auth_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.data_service_key

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self.session.access_token if self.session else self.api_key
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        try:
            response = await self._http.request(method, url, params=params, json=json, headers=self._headers(prefer))
        except httpx.RequestError as e:
            raise DataServiceUnavailable(f"Request error: {e}") from e

        if response.status_code >= 500:
            err = _error_from_response(response)
            raise DataServiceUnavailable(err.message, status_code=err.status_code, code=err.code)
        if response.status_code >= 400:
            raise _error_from_response(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DataServiceUnavailable(f"Invalid response format: {e}", status_code=response.status_code) from e

    async def list(self, table: str, order_by: str = "created_at", direction: str = "desc") -> list[dict]:
        rows = await self._request(
            "GET",
            f"{self.rest_url}/{table}",
            params={"select": "*", "order": f"{order_by}.{direction}"},
        )
        return rows or []

    async def insert(self, table: str, record: dict) -> None:
        await self._request("POST", f"{self.rest_url}/{table}", json=[record], prefer="return=minimal")

    async def update(self, table: str, record_id: str, patch: dict) -> dict:
        rows = await self._request(
            "PATCH",
            f"{self.rest_url}/{table}",
            params={"id": f"eq.{record_id}"},
            json=patch,
            prefer="return=representation",
        )
        # Rows hidden by the ownership policy are silently skipped by the service.
        if not rows:
            raise DataServiceError(
                "permission denied: no visible row to update",
                status_code=403,
                code=PERMISSION_DENIED_CODE,
            )
        return rows[0]

    async def delete(self, table: str, record_id: str) -> None:
        rows = await self._request(
            "DELETE",
            f"{self.rest_url}/{table}",
            params={"id": f"eq.{record_id}"},
            prefer="return=representation",
        )
        if not rows:
            raise DataServiceError(
                "permission denied: no visible row to delete",
                status_code=403,
                code=PERMISSION_DENIED_CODE,
            )

    def get_session(self) -> AuthSession | None:
        if self.session is None or self.session.is_expired():
            return None
        return self.session

    def expire_session(self) -> None:
        """Mark the bound session stale after the service rejected its token."""
        if self.session is not None:
            self.session = self.session.model_copy(update={"expires_at": time.time()})

    def _bind_token(self, data: Any, fallback_user_id: str = "") -> AuthSession:
        if not isinstance(data, dict) or not data.get("access_token"):
            raise DataServiceError("Auth response carried no access token")

        expires_at = data.get("expires_at")
        if not expires_at and data.get("expires_in"):
            expires_at = time.time() + float(data["expires_in"])

        self.session = AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            user_id=(data.get("user") or {}).get("id") or fallback_user_id,
            expires_at=float(expires_at or 0.0),
        )
        return self.session

    async def sign_in_anonymously(self) -> AuthSession:
        """Create an anonymous identity and bind it to this client."""
        self.session = None
        data = await self._request("POST", f"{self.auth_url}/signup", json={})
        session = self._bind_token(data)
        logger.info("Anonymous identity issued: user_id=%s", session.user_id)
        return session

    async def refresh_session(self) -> AuthSession:
        """Exchange the stored refresh token for a new access token, keeping the same identity.

        The stale session is dropped before the exchange, so on failure the
        client is left without one.
        """
        stale = self.session
        if stale is None or not stale.refresh_token:
            raise DataServiceError("No refresh token to exchange")

        self.session = None
        data = await self._request(
            "POST",
            f"{self.auth_url}/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": stale.refresh_token},
        )
        session = self._bind_token(data, fallback_user_id=stale.user_id)
        logger.debug("Session refreshed: user_id=%s", session.user_id)
        return session

    async def ping(self) -> bool:
        """Reachability check used by /health."""
        try:
            response = await self._http.get(f"{self.rest_url}/", headers=self._headers())
        except httpx.RequestError:
            return False
        return response.status_code < 500
