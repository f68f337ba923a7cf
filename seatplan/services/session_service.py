from __future__ import annotations

import logging

import jwt
from sqlmodel import Session, select

from seatplan.domain.models import Establishment, Principal, Profile, UserRole
from seatplan.infra.auth import create_access_token, decode_access_token, hash_password
from seatplan.infra.db import get_engine

logger = logging.getLogger(__name__)


class SessionError(Exception):
    pass


class AuthError(SessionError):
    pass


class SessionService:
    """Turns credentials into tokens and tokens back into principals."""

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def resolve(self, token: str | None) -> Principal | None:
        """Return the principal behind ``token``, or None when there is no valid session.

        A missing or unusable token is an ordinary outcome, not an error.
        """
        if not token:
            return None
        try:
            claims = decode_access_token(token)
        except (jwt.PyJWTError, ValueError):
            logger.debug("discarding invalid session token")
            return None
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        email = claims.get("email")
        return Principal(id=subject, email=email if isinstance(email, str) else None)

    def authenticate(
        self,
        establishment_code: str,
        username: str,
        password: str,
        role: UserRole | None = None,
    ) -> Profile:
        with self._session() as session:
            establishment = session.exec(
                select(Establishment).where(Establishment.code == establishment_code)
            ).first()
            if establishment is None:
                raise AuthError("invalid establishment code")
            statement = (
                select(Profile)
                .where(Profile.establishment_id == establishment.id)
                .where(Profile.username == username)
            )
            if role is not None:
                statement = statement.where(Profile.role == role)
            profile = session.exec(statement).first()
            if profile is None or profile.password_hash != hash_password(password):
                raise AuthError("invalid credentials")
        logger.info("profile %s signed in to establishment %s", profile.id, establishment.code)
        return profile

    def issue_token(self, profile: Profile) -> str:
        return create_access_token(user_id=profile.id, email=profile.email)
