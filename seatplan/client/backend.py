from __future__ import annotations

import logging
import os
import threading
from typing import Any

import httpx

from seatplan.domain.models import (
    Principal,
    ProfileWithEstablishmentRead,
    RoomOrder,
    RoomRead,
    TokenResponse,
    UserRole,
)

logger = logging.getLogger(__name__)

PUBLIC_URL_ENV = "SEATPLAN_PUBLIC_URL"
PUBLIC_ANON_KEY_ENV = "SEATPLAN_PUBLIC_ANON_KEY"
HTTP_TIMEOUT_ENV = "SEATPLAN_HTTP_TIMEOUT"


class ConfigurationError(RuntimeError):
    pass


class BackendError(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(
            f"{response.request.method} {response.request.url} failed with "
            f"{response.status_code}: {response.text}"
        )
        self.status_code = response.status_code


class BackendClient:
    """Async client for the seatplan auth and row endpoints.

    One instance holds the public anon key and, once signed in, the caller's
    access token. Methods return ``None`` for "not signed in" and "no such row"
    instead of raising.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"apikey": anon_key},
            timeout=timeout,
            transport=transport,
        )
        self._access_token: str | None = None

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def set_session(self, access_token: str | None) -> None:
        self._access_token = access_token

    def _auth_headers(self) -> dict[str, str]:
        if not self._access_token:
            return {}
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        return await self._http.get(path, params=params, headers=self._auth_headers())

    async def sign_in(
        self,
        establishment_code: str,
        username: str,
        password: str,
        role: UserRole | None = None,
    ) -> bool:
        payload: dict[str, Any] = {
            "establishment_code": establishment_code,
            "username": username,
            "password": password,
        }
        if role is not None:
            payload["role"] = role.value
        response = await self._http.post("/api/auth/token", json=payload)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return False
        if response.is_error:
            raise BackendError(response)
        self._access_token = TokenResponse.model_validate(response.json()).access_token
        return True

    def sign_out(self) -> None:
        self._access_token = None

    async def get_user(self) -> Principal | None:
        if not self._access_token:
            return None
        response = await self._get("/api/auth/user")
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return None
        if response.is_error:
            raise BackendError(response)
        return Principal.model_validate(response.json())

    async def get_profile(self, user_id: str) -> ProfileWithEstablishmentRead | None:
        response = await self._get(f"/api/rest/profiles/{user_id}", params={"select": "establishment"})
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.is_error:
            raise BackendError(response)
        return ProfileWithEstablishmentRead.model_validate(response.json())

    async def list_rooms(
        self,
        establishment_id: str,
        order: RoomOrder = RoomOrder.NAME_ASC,
    ) -> list[RoomRead]:
        response = await self._get(
            "/api/rest/rooms",
            params={"establishment_id": f"eq.{establishment_id}", "order": order.value},
        )
        if response.is_error:
            raise BackendError(response)
        rows = response.json() or []
        return [RoomRead.model_validate(item) for item in rows]

    async def aclose(self) -> None:
        await self._http.aclose()


_client: BackendClient | None = None
_client_lock = threading.Lock()


def get_backend_client() -> BackendClient:
    """Return the process-wide client, creating it on first use.

    Raises ConfigurationError before any request is made when the public URL
    or anon key is not configured.
    """
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            public_url = os.getenv(PUBLIC_URL_ENV)
            anon_key = os.getenv(PUBLIC_ANON_KEY_ENV)
            if not public_url or not anon_key:
                logger.error("backend client configuration missing")
                raise ConfigurationError(
                    f"Missing backend configuration. Please check {PUBLIC_URL_ENV} and {PUBLIC_ANON_KEY_ENV}"
                )
            timeout = float(os.getenv(HTTP_TIMEOUT_ENV, "10"))
            _client = BackendClient(public_url, anon_key, timeout=timeout)
    return _client


def reset_backend_client() -> None:
    global _client
    with _client_lock:
        _client = None
