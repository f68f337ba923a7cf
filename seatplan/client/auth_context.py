from __future__ import annotations

import asyncio
import logging

import httpx

from seatplan.client.backend import BackendClient, BackendError
from seatplan.domain.models import AuthUser, Principal, ProfileWithEstablishmentRead, UserRole

logger = logging.getLogger(__name__)


class AuthContext:
    """Signed-in user shared by every view of one client runtime.

    Principal and profile are looked up once per access token. Signing in or
    out, through the context or directly on the client, drops the cached result.
    """

    def __init__(self, client: BackendClient) -> None:
        self.client = client
        self.principal: Principal | None = None
        self.profile: ProfileWithEstablishmentRead | None = None
        self.user: AuthUser | None = None
        self.is_loading = True
        self._resolved_token: str | None = None
        self._lock = asyncio.Lock()

    async def resolve(self) -> AuthUser | None:
        async with self._lock:
            if self.is_loading or self._resolved_token != self.client.access_token:
                await self._load()
        return self.user

    async def _load(self) -> None:
        token = self.client.access_token
        principal: Principal | None = None
        profile: ProfileWithEstablishmentRead | None = None
        try:
            principal = await self.client.get_user()
            if principal is not None:
                profile = await self.client.get_profile(principal.id)
        except BackendError as exc:
            if exc.status_code != httpx.codes.UNAUTHORIZED:
                raise
            logger.info("session rejected by backend, treating as signed out")
            principal, profile = None, None

        self.principal = principal
        self.profile = profile
        self.user = AuthUser.from_profile(principal, profile) if principal and profile else None
        self._resolved_token = token
        self.is_loading = False

    async def sign_in(
        self,
        establishment_code: str,
        username: str,
        password: str,
        role: UserRole | None = None,
    ) -> bool:
        signed_in = await self.client.sign_in(establishment_code, username, password, role)
        self.invalidate()
        return signed_in

    def sign_out(self) -> None:
        self.client.sign_out()
        self.invalidate()

    def invalidate(self) -> None:
        self.principal = None
        self.profile = None
        self.user = None
        self._resolved_token = None
        self.is_loading = True
