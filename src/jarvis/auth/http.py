"""Authenticated HTTP access to third-party APIs.

Tools hold an ``AuthenticatedClient`` instead of inheriting request
plumbing: it loads the service's tokens, refreshes them when they are
about to expire, and retries once after a 401.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Protocol

import httpx

from jarvis.auth.credentials import CredentialStore, OAuthTokens

_log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class AuthError(Exception):
    """Credentials are missing or could not be refreshed."""


class ServiceError(Exception):
    """The remote API answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def not_authenticated_message(service: str) -> str:
    return f"{service.capitalize()} not authenticated. Please run: jarvis auth login {service}"


class TokenRefresher(Protocol):
    async def refresh(self, tokens: OAuthTokens) -> OAuthTokens:
        ...


class OAuthRefresher:
    """Performs the OAuth2 ``refresh_token`` grant against a token endpoint."""

    def __init__(self, token_url: str, client_id: str, client_secret: str) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret

    async def refresh(self, tokens: OAuthTokens) -> OAuthTokens:
        if not tokens.refresh_token:
            raise AuthError("No refresh token available")
        try:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                resp = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": tokens.refresh_token,
                    },
                    auth=(self.client_id, self.client_secret),
                )
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as exc:
            raise AuthError(f"Token refresh failed: {exc}") from exc

        return OAuthTokens(
            access_token=body["access_token"],
            # Providers may omit the refresh token when it is unchanged
            refresh_token=body.get("refresh_token") or tokens.refresh_token,
            expires_at=int(time.time() * 1000) + int(body.get("expires_in", 3600)) * 1000,
        )


class AuthenticatedClient:
    """Bearer-token HTTP client for one service."""

    def __init__(
        self,
        service: str,
        store: CredentialStore,
        base_url: str,
        refresher: Optional[TokenRefresher] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.service = service
        self.store = store
        self.base_url = base_url.rstrip("/")
        self.refresher = refresher
        self.timeout = timeout

    async def _refresh(self, tokens: OAuthTokens) -> OAuthTokens:
        if self.refresher is None:
            raise AuthError(
                f"{self.service.capitalize()} token expired. "
                f"Please run: jarvis auth login {self.service}"
            )
        _log.debug("%s token expired, refreshing", self.service)
        refreshed = await self.refresher.refresh(tokens)
        self.store.save(self.service, refreshed)
        return refreshed

    async def access_token(self) -> str:
        """Return a valid access token, refreshing it if necessary."""
        tokens = self.store.load(self.service)
        if tokens is None:
            raise AuthError(not_authenticated_message(self.service))
        if tokens.is_expired():
            tokens = await self._refresh(tokens)
        return tokens.access_token

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body.

        Returns None for empty responses (e.g. 204 No Content).

        Raises:
            AuthError: Credentials are missing or could not be refreshed.
            ServiceError: The API answered with an error status or was unreachable.
        """
        token = await self.access_token()
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.request(
                    method, url, json=json, params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
                if resp.status_code == 401:
                    tokens = self.store.load(self.service)
                    if tokens is None:
                        raise AuthError(not_authenticated_message(self.service))
                    token = (await self._refresh(tokens)).access_token
                    resp = await client.request(
                        method, url, json=json, params=params,
                        headers={"Authorization": f"Bearer {token}"},
                    )
            except httpx.RequestError as exc:
                raise ServiceError(
                    f"{self.service.capitalize()} API unreachable: {exc}"
                ) from exc

        if resp.status_code >= 400:
            raise ServiceError(
                f"{self.service.capitalize()} API error ({resp.status_code}): {_error_message(resp)}",
                status_code=resp.status_code,
            )
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or "Unknown error"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or "Unknown error"
    if isinstance(error, str):
        return body.get("error_description") or error
    return "Unknown error"
