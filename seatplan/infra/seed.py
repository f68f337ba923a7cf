from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import timedelta

import click
from sqlmodel import Session, select

from seatplan.domain.models import Establishment, Profile, Room, UserRole, now_utc
from seatplan.infra.auth import hash_password
from seatplan.infra.db import get_engine, init_db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedProfile:
    establishment_code: str
    username: str
    password: str
    role: UserRole
    first_name: str
    last_name: str


ESTABLISHMENTS: tuple[tuple[str, str], ...] = (
    ("stm001", "ST-MARIE 14000"),
    ("vh001", "VICTOR-HUGO 18760"),
)

PROFILES: tuple[SeedProfile, ...] = (
    SeedProfile("stm001", "vs.stmarie", "VieScol2024!", UserRole.VIE_SCOLAIRE, "Vie", "Scolaire"),
    SeedProfile("stm001", "prof.stmarie", "Prof2024!", UserRole.PROFESSEUR, "Professeur", "Test"),
    SeedProfile("stm001", "del.stmarie", "Delegue2024!", UserRole.DELEGUE, "Délégué", "Test"),
    SeedProfile("vh001", "vs.vhugo", "VieScol2024!", UserRole.VIE_SCOLAIRE, "Vie", "Scolaire"),
    SeedProfile("vh001", "prof.vhugo", "Prof2024!", UserRole.PROFESSEUR, "Professeur", "Test"),
)

ROOMS: tuple[tuple[str, str, str], ...] = (
    ("stm001", "Salle B12", "B12"),
    ("stm001", "Laboratoire", "LAB1"),
    ("stm001", "Amphithéâtre", "AMPHI"),
    ("vh001", "Salle 101", "S101"),
    ("vh001", "CDI", "CDI"),
)

DEFAULT_ROOM_CONFIG = {
    "columns": [
        {"id": "col-1", "tables": 4, "seatsPerTable": 2},
        {"id": "col-2", "tables": 4, "seatsPerTable": 2},
        {"id": "col-3", "tables": 4, "seatsPerTable": 2},
    ]
}


def seed_demo_data(session: Session) -> dict[str, int]:
    """Insert demo establishments, profiles and rooms; existing rows are left alone."""
    counts = {"establishments": 0, "profiles": 0, "rooms": 0}
    by_code: dict[str, Establishment] = {}
    for code, name in ESTABLISHMENTS:
        establishment = session.exec(select(Establishment).where(Establishment.code == code)).first()
        if establishment is None:
            establishment = Establishment(code=code, name=name)
            session.add(establishment)
            counts["establishments"] += 1
        by_code[code] = establishment
    session.flush()

    for item in PROFILES:
        establishment = by_code[item.establishment_code]
        existing = session.exec(
            select(Profile)
            .where(Profile.establishment_id == establishment.id)
            .where(Profile.username == item.username)
        ).first()
        if existing is not None:
            continue
        session.add(
            Profile(
                establishment_id=establishment.id,
                role=item.role,
                username=item.username,
                password_hash=hash_password(item.password),
                first_name=item.first_name,
                last_name=item.last_name,
                email=f"{item.username}@test.local",
                can_create_subrooms=item.role == UserRole.VIE_SCOLAIRE,
            )
        )
        counts["profiles"] += 1

    base_time = now_utc() - timedelta(days=len(ROOMS))
    for offset, (code, name, room_code) in enumerate(ROOMS):
        establishment = by_code[code]
        existing_room = session.exec(
            select(Room).where(Room.establishment_id == establishment.id).where(Room.code == room_code)
        ).first()
        if existing_room is not None:
            continue
        created_at = base_time + timedelta(days=offset)
        session.add(
            Room(
                establishment_id=establishment.id,
                name=name,
                code=room_code,
                config=copy.deepcopy(DEFAULT_ROOM_CONFIG),
                created_at=created_at,
                updated_at=created_at,
            )
        )
        counts["rooms"] += 1

    session.commit()
    return counts


@click.command("seed")
@click.option("--reset", is_flag=True, default=False, help="Drop and recreate all tables first.")
def main(reset: bool) -> None:
    """Create the tables and load the demo establishments."""
    logging.basicConfig(level=logging.INFO)
    init_db(reset=reset)
    with Session(get_engine()) as session:
        counts = seed_demo_data(session)
    logger.info("seeded %s", counts)
    click.echo(
        f"establishments={counts['establishments']} profiles={counts['profiles']} rooms={counts['rooms']}"
    )


if __name__ == "__main__":
    main()
