from __future__ import annotations

from dataclasses import dataclass

from sqlmodel import Session, select

from seatplan.domain.models import Establishment, Profile
from seatplan.infra.db import get_engine


@dataclass(frozen=True)
class ScopedProfile:
    profile: Profile
    establishment: Establishment | None

    @property
    def establishment_id(self) -> str | None:
        return self.profile.establishment_id

    @property
    def has_scope(self) -> bool:
        return bool(self.profile.establishment_id)


class ProfileService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def get_profile(self, user_id: str) -> ScopedProfile | None:
        """Single-row profile lookup joined with its establishment."""
        with self._session() as session:
            row = session.exec(
                select(Profile, Establishment)
                .join(Establishment, Profile.establishment_id == Establishment.id, isouter=True)
                .where(Profile.id == user_id)
            ).first()
        if row is None:
            return None
        profile, establishment = row
        return ScopedProfile(profile=profile, establishment=establishment)
