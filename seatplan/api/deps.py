from __future__ import annotations

import os
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from seatplan.domain.models import Principal
from seatplan.services.profile_service import ProfileService, ScopedProfile
from seatplan.services.session_service import SessionService

SESSION_COOKIE_NAME = "seatplan_session"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_session_service() -> SessionService:
    return SessionService()


def get_profile_service() -> ProfileService:
    return ProfileService()


def require_api_key(apikey: Annotated[str | None, Header()] = None) -> None:
    expected = os.getenv("SEATPLAN_PUBLIC_ANON_KEY")
    if not expected:
        return
    if not apikey or not secrets.compare_digest(apikey, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


def get_current_principal(
    request: Request,
    service: Annotated[SessionService, Depends(get_session_service)],
    token: str | None = Depends(oauth2_scheme),
) -> Principal:
    principal = service.resolve(token or request.cookies.get(SESSION_COOKIE_NAME))
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.principal = principal
    return principal


def get_current_scope(
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> ScopedProfile | None:
    return service.get_profile(principal.id)
