from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def now_utc() -> datetime:
    return datetime.now(UTC)


class UserRole(StrEnum):
    VIE_SCOLAIRE = "vie-scolaire"
    PROFESSEUR = "professeur"
    DELEGUE = "delegue"
    ECO_DELEGUE = "eco-delegue"


class BoardPosition(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class Establishment(SQLModel, table=True):
    __tablename__ = "establishments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    code: str = Field(index=True, unique=True)
    name: str
    created_at: datetime = Field(default_factory=now_utc, sa_type=DateTime(timezone=True), index=True)


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("establishment_id", "username", name="uq_profiles_establishment_username"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    establishment_id: str | None = Field(default=None, foreign_key="establishments.id", index=True)
    role: UserRole
    username: str = Field(index=True)
    password_hash: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = Field(default=None, index=True)
    can_create_subrooms: bool = Field(default=False)
    created_at: datetime = Field(default_factory=now_utc, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=now_utc, sa_type=DateTime(timezone=True))


class Room(SQLModel, table=True):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("establishment_id", "code", name="uq_rooms_establishment_code"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    establishment_id: str = Field(foreign_key="establishments.id", index=True)
    name: str = Field(index=True)
    code: str
    board_position: BoardPosition = Field(default=BoardPosition.TOP)
    config: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    created_by: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=now_utc, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=now_utc, sa_type=DateTime(timezone=True))


class Principal(BaseModel):
    """Authenticated identity carried by a session token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None


class ORMReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class EstablishmentRead(ORMReadModel):
    id: str
    code: str
    name: str
    created_at: datetime


class ProfileRead(ORMReadModel):
    id: str
    establishment_id: str | None = None
    role: UserRole
    username: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    can_create_subrooms: bool = False
    created_at: datetime
    updated_at: datetime


class ProfileWithEstablishmentRead(ProfileRead):
    establishment: EstablishmentRead | None = None


class RoomRead(ORMReadModel):
    id: str
    establishment_id: str
    name: str
    code: str
    board_position: BoardPosition
    config: dict[str, Any] = PydanticField(default_factory=dict)
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class PrincipalRead(ORMReadModel):
    id: str
    email: str | None = None


class AuthUser(BaseModel):
    """Signed-in user as the client views see it: identity plus profile scope."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    establishment_id: str | None = None
    role: UserRole
    username: str
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_profile(cls, principal: Principal, profile: ProfileRead) -> AuthUser:
        return cls(
            id=principal.id,
            email=principal.email or profile.email,
            establishment_id=profile.establishment_id,
            role=profile.role,
            username=profile.username,
            first_name=profile.first_name,
            last_name=profile.last_name,
        )


class LoginRequest(BaseModel):
    establishment_code: str
    username: str
    password: str
    role: UserRole | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class RoomOrder(StrEnum):
    NAME_ASC = "name.asc"
    NAME_DESC = "name.desc"
    CREATED_AT_ASC = "created_at.asc"
    CREATED_AT_DESC = "created_at.desc"
