from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from seatplan.api.deps import get_current_principal, get_session_service, require_api_key
from seatplan.domain.models import LoginRequest, Principal, PrincipalRead, TokenResponse
from seatplan.infra.auth import JWT_EXPIRES_MIN
from seatplan.services.session_service import AuthError, SessionError, SessionService

router = APIRouter()

Service = Annotated[SessionService, Depends(get_session_service)]


def _handle_session_error(exc: Exception) -> None:
    if isinstance(exc, AuthError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    raise exc


@router.post("/token", response_model=TokenResponse)
def issue_token(payload: LoginRequest, service: Service) -> TokenResponse:
    try:
        profile = service.authenticate(
            payload.establishment_code,
            payload.username,
            payload.password,
            role=payload.role,
        )
    except SessionError as exc:
        _handle_session_error(exc)
        raise
    return TokenResponse(
        access_token=service.issue_token(profile),
        expires_in=JWT_EXPIRES_MIN * 60,
    )


@router.get("/user", response_model=PrincipalRead, dependencies=[Depends(require_api_key)])
def read_user(principal: Annotated[Principal, Depends(get_current_principal)]) -> PrincipalRead:
    return PrincipalRead.model_validate(principal)
