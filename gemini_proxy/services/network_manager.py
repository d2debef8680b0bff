"""Shared httpx client pool for upstream calls."""

from __future__ import annotations

import asyncio
from typing import Dict, Optional

import httpx

from ..helpers import info_log, error_log


_CONNECTION_POOL_CONFIG: Dict[str, object] = {
    "limits": httpx.Limits(
        max_keepalive_connections=20,
        max_connections=100,
        keepalive_expiry=30,
    ),
    "timeout": httpx.Timeout(
        connect=10.0,
        read=300.0,
        write=30.0,
        pool=10.0,
    ),
    "http2": True,
}


class NetworkManager:
    """Keep one pooled AsyncClient per proxy (or one direct client)."""

    def __init__(self) -> None:
        self._proxy_clients: Dict[str, httpx.AsyncClient] = {}
        self._default_client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def get_or_create_client(self, proxy_url: Optional[str] = None) -> httpx.AsyncClient:
        async with self._client_lock:
            if proxy_url is None:
                if self._default_client is None:
                    info_log("[CLIENT] Creating default client (no proxy)")
                    self._default_client = httpx.AsyncClient(**_CONNECTION_POOL_CONFIG)
                return self._default_client

            if proxy_url not in self._proxy_clients:
                info_log("[CLIENT] Creating client for proxy", proxy=proxy_url)
                self._proxy_clients[proxy_url] = httpx.AsyncClient(
                    proxy=proxy_url,
                    **_CONNECTION_POOL_CONFIG,
                )

            return self._proxy_clients[proxy_url]

    async def cleanup_clients(self) -> None:
        async with self._client_lock:
            clients_to_close = list(self._proxy_clients.values())
            self._proxy_clients.clear()
            if self._default_client is not None:
                clients_to_close.append(self._default_client)
            self._default_client = None

        for client in clients_to_close:
            try:
                await client.aclose()
            except httpx.HTTPError as exc:  # pragma: no cover - logged only
                error_log("[CLIENT] Failed to close client", error=str(exc))

        info_log("[CLIENT] All clients closed", count=len(clients_to_close))


network_manager = NetworkManager()
