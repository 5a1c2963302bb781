# -*- coding: utf-8 -*-
"""
Remote API Client - WorkDesk
============================

Async client for the WorkDesk REST API, used by the sync engines.

Usage:
    async with RemoteAPIClient("http://localhost:8000") as remote:
        await remote.login("me@example.com", "secret")
        tasks = await remote.tasks.list()
        task = await remote.tasks.create({"title": "Buy milk"})

No timeout is applied unless one is passed: a hung call stalls only the
operation awaiting it.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from workdesk import __version__

logger = logging.getLogger(__name__)

# 4xx answers worth retrying later (expired session, throttling, timeouts)
RETRYABLE_STATUS_CODES = {401, 403, 408, 429}


# =============================================================================
# Exceptions
# =============================================================================

class RemoteError(Exception):
    """Base error for remote calls"""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    @property
    def retryable(self) -> bool:
        return True

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class RemoteUnavailableError(RemoteError):
    """Transport failure: unreachable host, refused connection, timeout"""
    pass


class RemoteServerError(RemoteError):
    """5xx answer"""
    pass


class RemoteRejectedError(RemoteError):
    """4xx answer; permanent unless the status is in RETRYABLE_STATUS_CODES"""

    @property
    def retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUS_CODES

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


# =============================================================================
# Resources
# =============================================================================

class ResourceClient:
    """CRUD calls for one collection (/tasks, /knowledge)"""

    def __init__(self, client: "RemoteAPIClient", path: str):
        self._client = client
        self.path = path

    async def list(self, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return await self._client.get(self.path, params=params or None)

    async def get(self, entity_id: str) -> Dict[str, Any]:
        return await self._client.get(f"{self.path}/{entity_id}")

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._client.post(self.path, json_data=data)

    async def update(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._client.put(f"{self.path}/{entity_id}", json_data=data)

    async def delete(self, entity_id: str) -> Dict[str, Any]:
        return await self._client.delete(f"{self.path}/{entity_id}")


class KnowledgeResourceClient(ResourceClient):
    """Knowledge base calls"""

    async def tags(self) -> List[str]:
        return await self._client.get(f"{self.path}/tags")

    async def search(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._client.post(f"{self.path}/search", json_data=query)


# =============================================================================
# Client
# =============================================================================

class RemoteAPIClient:
    """
    Async HTTP client for the REST surface.

    Args:
        base_url: API root, e.g. http://localhost:8000
        token: Bearer token (set by login/register when omitted)
        transport: Custom httpx transport (ASGITransport in tests)
        timeout: Seconds, or None for no timeout
    """

    def __init__(
        self,
        base_url: str,
        token: str = None,
        transport: httpx.AsyncBaseTransport = None,
        timeout: Optional[float] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

        self.tasks = ResourceClient(self, "/tasks")
        self.knowledge = KnowledgeResourceClient(self, "/knowledge")

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"WorkDeskClient/{__version__}",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _handle_response(response: httpx.Response) -> Any:
        status_code = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {"detail": response.text}

        if status_code >= 400:
            detail = body.get("detail", "Unknown error") if isinstance(body, dict) else body
            message = detail if isinstance(detail, str) else f"HTTP {status_code}"
            if status_code >= 500:
                raise RemoteServerError(message, status_code=status_code, detail=detail)
            raise RemoteRejectedError(message, status_code=status_code, detail=detail)

        return body

    async def request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] = None,
        json_data: Any = None
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, params=params, json=json_data, headers=self._get_headers()
            )
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{method} {path} failed: {e}") from e
        return self._handle_response(response)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        data = await self.post("/auth/register", json_data={"username": username, "email": email, "password": password})
        self.token = data.get("token")
        return data

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self.post("/auth/login", json_data={"email": email, "password": password})
        self.token = data.get("token")
        return data

    async def me(self) -> Dict[str, Any]:
        return await self.get("/auth/me")

    async def ping(self) -> bool:
        """True when /health answers; usable as a ConnectivityMonitor probe"""
        try:
            await self.get("/health")
            return True
        except RemoteError as e:
            logger.debug(f"[Remote] Ping failed: {e}")
            return False

    async def status_report(self, report_type: str = "daily", **params) -> Dict[str, Any]:
        return await self.get("/reports/status", params={"type": report_type, **params})

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
