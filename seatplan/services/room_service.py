from __future__ import annotations

from sqlmodel import Session, col, select

from seatplan.domain.models import Room, RoomOrder
from seatplan.infra.db import get_engine


class RoomError(Exception):
    pass


class InvalidOrderError(RoomError):
    pass


def parse_room_order(raw: str | None, default: RoomOrder) -> RoomOrder:
    if not raw:
        return default
    try:
        return RoomOrder(raw)
    except ValueError as exc:
        raise InvalidOrderError(f"unsupported order: {raw}") from exc


class RoomService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def list_rooms(
        self,
        establishment_id: str,
        order: RoomOrder = RoomOrder.CREATED_AT_DESC,
    ) -> list[Room]:
        """Rooms of one establishment, never None.

        The dashboard page lists newest first while the client-side rooms page
        asks for ``name.asc``; callers pass the order they display.
        """
        column_name, direction = order.value.split(".")
        column = col(Room.name) if column_name == "name" else col(Room.created_at)
        ordering = column.desc() if direction == "desc" else column.asc()
        with self._session() as session:
            statement = (
                select(Room)
                .where(Room.establishment_id == establishment_id)
                .order_by(ordering, col(Room.id))
            )
            rows = session.exec(statement).all()
        return list(rows or [])
