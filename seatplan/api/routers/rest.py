from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from seatplan.api.deps import get_current_principal, get_current_scope
from seatplan.domain.models import (
    EstablishmentRead,
    Principal,
    ProfileRead,
    ProfileWithEstablishmentRead,
    RoomOrder,
    RoomRead,
)
from seatplan.services.profile_service import ScopedProfile
from seatplan.services.room_service import InvalidOrderError, RoomError, RoomService, parse_room_order

router = APIRouter()


def get_room_service() -> RoomService:
    return RoomService()


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
CurrentScope = Annotated[ScopedProfile | None, Depends(get_current_scope)]
Service = Annotated[RoomService, Depends(get_room_service)]


def _handle_room_error(exc: Exception) -> None:
    if isinstance(exc, InvalidOrderError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


def _parse_eq_filter(raw: str, field: str) -> str:
    operator, _, value = raw.partition(".")
    if operator != "eq" or not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"unsupported filter for {field}: {raw}",
        )
    return value


def _profile_read(scope: ScopedProfile, *, embed_establishment: bool) -> ProfileWithEstablishmentRead:
    base = ProfileRead.model_validate(scope.profile)
    establishment = None
    if embed_establishment and scope.establishment is not None:
        establishment = EstablishmentRead.model_validate(scope.establishment)
    return ProfileWithEstablishmentRead(**base.model_dump(), establishment=establishment)


@router.get("/profiles/{profile_id}", response_model=ProfileWithEstablishmentRead)
def get_profile(
    profile_id: str,
    principal: CurrentPrincipal,
    scope: CurrentScope,
    select: str | None = Query(default=None),
) -> ProfileWithEstablishmentRead:
    # Row-level rule: a session can only read its own profile row.
    if profile_id != principal.id or scope is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="profile not found")
    return _profile_read(scope, embed_establishment=select == "establishment")


@router.get("/establishments/{establishment_id}", response_model=EstablishmentRead)
def get_establishment(establishment_id: str, scope: CurrentScope) -> EstablishmentRead:
    if scope is None or scope.establishment is None or scope.establishment.id != establishment_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="establishment not found")
    return EstablishmentRead.model_validate(scope.establishment)


@router.get("/rooms", response_model=list[RoomRead])
def list_rooms(
    scope: CurrentScope,
    service: Service,
    establishment_id: str = Query(...),
    order: str | None = Query(default=None),
) -> list[RoomRead]:
    requested = _parse_eq_filter(establishment_id, "establishment_id")
    try:
        room_order = parse_room_order(order, RoomOrder.CREATED_AT_DESC)
    except RoomError as exc:
        _handle_room_error(exc)
        raise
    if scope is None or not scope.has_scope or scope.establishment_id != requested:
        return []
    rooms = service.list_rooms(requested, room_order)
    return [RoomRead.model_validate(item) for item in rooms]
