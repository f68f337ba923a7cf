from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlparse

from fastapi import APIRouter, Form, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from seatplan.api.deps import SESSION_COOKIE_NAME
from seatplan.domain.models import Principal, RoomOrder, RoomRead, UserRole
from seatplan.infra.auth import JWT_EXPIRES_MIN
from seatplan.services.profile_service import ProfileService
from seatplan.services.room_service import RoomService
from seatplan.services.session_service import AuthError, SessionService

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "web" / "templates"))

CSRF_COOKIE_NAME = "seatplan_csrf"
SESSION_MAX_AGE_SECONDS = JWT_EXPIRES_MIN * 60
LOGIN_PATH = "/login"
DEFAULT_NEXT_PATH = "/dashboard/espace-classe"
PROFILE_NOT_FOUND_TEXT = "Profile not found"


def _sanitize_next_path(next_path: str | None) -> str:
    if not next_path:
        return DEFAULT_NEXT_PATH
    parsed = urlparse(next_path)
    if parsed.scheme or parsed.netloc:
        return DEFAULT_NEXT_PATH
    if not parsed.path.startswith("/dashboard"):
        return DEFAULT_NEXT_PATH
    sanitized = parsed.path
    if parsed.query:
        sanitized = f"{sanitized}?{parsed.query}"
    return sanitized


def _new_csrf_token() -> str:
    return secrets.token_urlsafe(24)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=SESSION_MAX_AGE_SECONDS,
        path="/",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


def _set_csrf_cookie(response: Response, csrf_token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=csrf_token,
        httponly=False,
        samesite="strict",
        max_age=SESSION_MAX_AGE_SECONDS,
        path="/",
    )


def _verify_csrf(request: Request, csrf_token: str) -> None:
    csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)
    if not csrf_cookie or not csrf_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid csrf token")
    if not secrets.compare_digest(csrf_cookie, csrf_token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid csrf token")


def _current_principal(request: Request) -> Principal | None:
    return SessionService().resolve(request.cookies.get(SESSION_COOKIE_NAME))


def _login_redirect(request: Request) -> RedirectResponse:
    requested_path = request.url.path
    if request.url.query:
        requested_path = f"{requested_path}?{request.url.query}"
    logger.info("no session for %s, redirecting to login", request.url.path)
    response = RedirectResponse(
        url=f"{LOGIN_PATH}?next={quote(requested_path, safe='')}",
        status_code=status.HTTP_303_SEE_OTHER,
    )
    if request.cookies.get(SESSION_COOKIE_NAME):
        _clear_session_cookie(response)
    return response


def _render(
    request: Request,
    name: str,
    context: dict[str, Any],
    *,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    csrf_token = request.cookies.get(CSRF_COOKIE_NAME) or _new_csrf_token()
    response = templates.TemplateResponse(
        request=request,
        name=name,
        context={"csrf_token": csrf_token, **context},
        status_code=status_code,
    )
    if not request.cookies.get(CSRF_COOKIE_NAME):
        _set_csrf_cookie(response, csrf_token)
    return response


def _render_login(
    request: Request,
    *,
    next_path: str,
    establishment_code: str = "",
    username: str = "",
    error_message: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    return _render(
        request,
        "login.html",
        {
            "next_path": next_path,
            "establishment_code": establishment_code,
            "username": username,
            "roles": list(UserRole),
            "error_message": error_message,
        },
        status_code=status_code,
    )


@router.get("/")
def root(request: Request) -> RedirectResponse:
    if _current_principal(request) is not None:
        return RedirectResponse(url=DEFAULT_NEXT_PATH, status_code=status.HTTP_303_SEE_OTHER)
    return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login")
def login_page(request: Request, next_path: str | None = Query(default=None, alias="next")) -> Response:
    safe_next = _sanitize_next_path(next_path)
    if _current_principal(request) is not None:
        return RedirectResponse(url=safe_next, status_code=status.HTTP_303_SEE_OTHER)
    return _render_login(request, next_path=safe_next)


@router.post("/login")
def login_submit(
    request: Request,
    establishment_code: str = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    csrf_token: str = Form(...),
    role: str = Form(default=""),
    next_path: str = Form(DEFAULT_NEXT_PATH, alias="next"),
) -> Response:
    safe_next = _sanitize_next_path(next_path)
    try:
        _verify_csrf(request, csrf_token)
    except HTTPException as exc:
        return _render_login(
            request,
            next_path=safe_next,
            establishment_code=establishment_code,
            username=username,
            error_message=str(exc.detail),
            status_code=exc.status_code,
        )

    service = SessionService()
    try:
        profile = service.authenticate(
            establishment_code,
            username,
            password,
            role=UserRole(role) if role else None,
        )
    except (AuthError, ValueError):
        logger.info("login rejected for %s@%s", username, establishment_code)
        return _render_login(
            request,
            next_path=safe_next,
            establishment_code=establishment_code,
            username=username,
            error_message="invalid establishment code, username, or password",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    response = RedirectResponse(url=safe_next, status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, service.issue_token(profile))
    _set_csrf_cookie(response, _new_csrf_token())
    return response


@router.post("/logout")
def logout(request: Request, csrf_token: str = Form(...)) -> RedirectResponse:
    _verify_csrf(request, csrf_token)
    response = RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
    _clear_session_cookie(response)
    _set_csrf_cookie(response, _new_csrf_token())
    return response


@router.get("/dashboard/espace-classe")
def espace_classe(request: Request) -> Response:
    principal = _current_principal(request)
    if principal is None:
        return _login_redirect(request)

    scope = ProfileService().get_profile(principal.id)
    if scope is None or not scope.has_scope:
        logger.warning("profile not found for principal %s", principal.id)
        return _render(request, "profile_not_found.html", {"message": PROFILE_NOT_FOUND_TEXT})

    rooms = RoomService().list_rooms(scope.establishment_id or "", RoomOrder.CREATED_AT_DESC)
    return _render(
        request,
        "espace_classe.html",
        {
            "rooms": [RoomRead.model_validate(item) for item in rooms],
            "user_role": scope.profile.role,
            "user_id": principal.id,
            "establishment_id": scope.establishment_id,
            "establishment": scope.establishment,
        },
    )


@router.get("/dashboard/rooms")
def rooms_shell(request: Request) -> Response:
    principal = _current_principal(request)
    if principal is None:
        return _login_redirect(request)
    return _render(
        request,
        "rooms.html",
        {"user_id": principal.id, "anon_key": os.getenv("SEATPLAN_PUBLIC_ANON_KEY", "")},
    )
