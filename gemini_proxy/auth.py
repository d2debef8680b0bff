#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Google OAuth credential management for the Code Assist backend

Credentials come from the GCP_SERVICE_ACCOUNT setting (the JSON written by
`gemini auth`). Access tokens are cached in memory only.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx
import orjson

from .config import Settings, settings as default_settings
from .constants import TOKEN_REFRESH_MARGIN_SECONDS
from .errors import AuthenticationError, UpstreamError
from .helpers import debug_log, error_log, info_log, json_lib
from .services.network_manager import network_manager


class AuthManager:
    """OAuth access-token provider with an in-memory cache"""

    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or default_settings
        self._http_client = http_client
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0
        # set after a rejected token so the stored credential is not reused
        self._force_refresh = False
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await network_manager.get_or_create_client(self.settings.HTTPS_PROXY)

    def _token_is_fresh(self) -> bool:
        return bool(self._access_token) and self._expires_at - time.time() > TOKEN_REFRESH_MARGIN_SECONDS

    def _load_credentials(self) -> Dict[str, Any]:
        raw = self.settings.GCP_SERVICE_ACCOUNT
        if not raw:
            raise AuthenticationError("`GCP_SERVICE_ACCOUNT` is not set")
        try:
            credentials = json_lib.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise AuthenticationError(f"`GCP_SERVICE_ACCOUNT` is not valid JSON: {exc}") from exc
        if not isinstance(credentials, dict):
            raise AuthenticationError("`GCP_SERVICE_ACCOUNT` must be a JSON object")
        return credentials

    async def initialize_auth(self) -> None:
        """Make sure a usable access token is cached, refreshing it when needed."""
        async with self._lock:
            if self._token_is_fresh():
                debug_log("[AUTH] Using cached access token")
                return

            credentials = self._load_credentials()
            expiry_ms = credentials.get("expiry_date") or 0
            stored_token = credentials.get("access_token")
            if (
                stored_token
                and not self._force_refresh
                and expiry_ms / 1000 - time.time() > TOKEN_REFRESH_MARGIN_SECONDS
            ):
                self._access_token = stored_token
                self._expires_at = expiry_ms / 1000
                info_log("[AUTH] Using stored access token", expires_in=int(self._expires_at - time.time()))
                return

            await self._refresh_token(credentials)
            self._force_refresh = False

    async def _refresh_token(self, credentials: Dict[str, Any]) -> None:
        refresh_token = credentials.get("refresh_token")
        if not refresh_token:
            raise AuthenticationError("No refresh token available in `GCP_SERVICE_ACCOUNT`")

        client_id = self.settings.OAUTH_CLIENT_ID or credentials.get("client_id")
        client_secret = self.settings.OAUTH_CLIENT_SECRET or credentials.get("client_secret", "")
        if not client_id:
            raise AuthenticationError("No OAuth client_id configured, set `OAUTH_CLIENT_ID`")

        info_log("[AUTH] Refreshing access token")
        client = await self._get_client()
        try:
            response = await client.post(
                self.settings.OAUTH_TOKEN_ENDPOINT,
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as exc:
            raise AuthenticationError(f"Token refresh failed: {exc}") from exc

        if response.status_code != 200:
            error_log("[AUTH] Token refresh rejected", status_code=response.status_code, detail=response.text[:200])
            raise AuthenticationError(f"Token refresh failed: {response.status_code}")

        tokens = response.json()
        self._access_token = tokens["access_token"]
        self._expires_at = time.time() + int(tokens.get("expires_in", 3600))
        info_log("[AUTH] Access token refreshed", expires_in=tokens.get("expires_in", 3600))

    def get_access_token(self) -> Optional[str]:
        return self._access_token

    async def clear_token_cache(self) -> None:
        async with self._lock:
            self._access_token = None
            self._expires_at = 0.0
            self._force_refresh = True
        info_log("[AUTH] Token cache cleared")

    def endpoint_url(self, method: str) -> str:
        return f"{self.settings.CODE_ASSIST_ENDPOINT}/{self.settings.CODE_ASSIST_API_VERSION}:{method}"

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.get_access_token()}",
        }

    async def call_endpoint(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body to a Code Assist method; a rejected token is refreshed once."""
        client = await self._get_client()
        for attempt in range(2):
            await self.initialize_auth()
            response = await client.post(self.endpoint_url(method), json=body, headers=self.auth_headers())
            if response.status_code == 401 and attempt == 0:
                info_log("[AUTH] Endpoint rejected token, refreshing", method=method)
                await self.clear_token_cache()
                continue
            if response.status_code != 200:
                raise UpstreamError(
                    response.status_code,
                    f"API call failed with status {response.status_code}: {response.text[:200]}",
                    body=response.text,
                )
            return response.json()


auth_manager = AuthManager()
