from __future__ import annotations

import asyncio
import logging
from enum import StrEnum

from seatplan.client.auth_context import AuthContext
from seatplan.domain.models import ProfileWithEstablishmentRead, RoomOrder, RoomRead

logger = logging.getLogger(__name__)


class PageState(StrEnum):
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"


class RoomsPageController:
    """Loads the rooms page data after mount: session, then profile, then rooms.

    The load runs as a task tied to the view. ``unmount`` cancels it, and no
    state is written once the view is gone.
    """

    def __init__(self, auth: AuthContext) -> None:
        self._auth = auth
        self._client = auth.client
        self._task: asyncio.Task[None] | None = None
        self._unmounted = False
        self.state = PageState.LOADING
        self.profile: ProfileWithEstablishmentRead | None = None
        self.rooms: list[RoomRead] = []

    @property
    def is_loading(self) -> bool:
        return self.state == PageState.LOADING

    @property
    def is_mounted(self) -> bool:
        return self._task is not None and not self._unmounted

    def mount(self) -> asyncio.Task[None]:
        if self._unmounted:
            raise RuntimeError("controller already unmounted")
        if self._task is None:
            self._task = asyncio.create_task(self._load())
        return self._task

    def unmount(self) -> None:
        self._unmounted = True
        if self._task is not None and not self._task.done():
            logger.debug("cancelling rooms load for unmounted view")
            self._task.cancel()

    async def load(self) -> PageState:
        await self.mount()
        return self.state

    def _commit(
        self,
        state: PageState,
        *,
        profile: ProfileWithEstablishmentRead | None = None,
        rooms: list[RoomRead] | None = None,
    ) -> None:
        if self._unmounted:
            return
        self.profile = profile
        self.rooms = rooms or []
        self.state = state

    async def _load(self) -> None:
        user = await self._auth.resolve()
        if self._auth.principal is None:
            self._commit(PageState.UNAUTHENTICATED)
            return

        profile = self._auth.profile
        if user is None or not user.establishment_id:
            logger.warning("profile not found for principal %s", self._auth.principal.id)
            self._commit(PageState.NOT_FOUND, profile=profile)
            return

        rooms = await self._client.list_rooms(user.establishment_id, RoomOrder.NAME_ASC)
        self._commit(PageState.READY, profile=profile, rooms=rooms)
