from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from seatplan import main as app_main
from seatplan.client import backend
from seatplan.client.auth_context import AuthContext
from seatplan.client.backend import (
    BackendClient,
    BackendError,
    ConfigurationError,
    get_backend_client,
    reset_backend_client,
)
from seatplan.client.rooms_page import PageState, RoomsPageController
from seatplan.domain.models import Establishment, Profile, Room, UserRole, now_utc
from seatplan.infra import db
from seatplan.infra.auth import create_access_token, hash_password

ANON_KEY = "client-anon-key"
BASE_URL = "http://testserver"


@pytest.fixture(autouse=True)
def _fresh_singleton() -> Any:
    reset_backend_client()
    yield
    reset_backend_client()


@pytest.fixture()
def seeded_engine(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Engine:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'client_test.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setenv("SEATPLAN_PUBLIC_ANON_KEY", ANON_KEY)

    base = now_utc() - timedelta(days=1)
    with Session(engine) as session:
        school = Establishment(code="stm001", name="ST-MARIE 14000")
        other = Establishment(code="vh001", name="VICTOR-HUGO 18760")
        session.add(school)
        session.add(other)
        session.flush()
        session.add(
            Profile(
                establishment_id=school.id,
                role=UserRole.PROFESSEUR,
                username="prof.stmarie",
                password_hash=hash_password("Prof2024!"),
            )
        )
        session.add(
            Profile(
                establishment_id=None,
                role=UserRole.DELEGUE,
                username="orphan",
                password_hash=hash_password("Orphan2024!"),
            )
        )
        # Newest room has the alphabetically first name.
        for offset, name in enumerate(["Salle C", "Salle B", "Salle A"]):
            session.add(
                Room(
                    establishment_id=school.id,
                    name=name,
                    code=name[-1],
                    created_at=base + timedelta(minutes=offset),
                )
            )
        session.add(Room(establishment_id=other.id, name="Salle 0", code="0"))
        session.commit()
    return engine


def _asgi_client() -> BackendClient:
    return BackendClient(BASE_URL, ANON_KEY, transport=httpx.ASGITransport(app=app_main.app))


def test_missing_configuration_fails_before_any_request(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SEATPLAN_PUBLIC_URL", raising=False)
    monkeypatch.setenv("SEATPLAN_PUBLIC_ANON_KEY", "key")

    def _no_http(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("http client must not be created")

    monkeypatch.setattr(backend.httpx, "AsyncClient", _no_http)

    with pytest.raises(ConfigurationError):
        get_backend_client()

    monkeypatch.setenv("SEATPLAN_PUBLIC_URL", "http://backend.local")
    monkeypatch.delenv("SEATPLAN_PUBLIC_ANON_KEY")
    with pytest.raises(ConfigurationError):
        get_backend_client()


def test_backend_client_is_a_singleton(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEATPLAN_PUBLIC_URL", "http://backend.local")
    monkeypatch.setenv("SEATPLAN_PUBLIC_ANON_KEY", "key")

    first = get_backend_client()
    second = get_backend_client()

    assert first is second
    reset_backend_client()
    assert get_backend_client() is not first


def test_rooms_page_loads_rooms_sorted_by_name(seeded_engine: Engine) -> None:
    async def _run() -> RoomsPageController:
        client = _asgi_client()
        try:
            assert await client.sign_in("stm001", "prof.stmarie", "Prof2024!")
            auth = AuthContext(client)
            controller = RoomsPageController(auth)
            assert controller.is_loading
            await controller.load()
            assert auth.user is not None
            assert auth.user.username == "prof.stmarie"
            assert auth.user.role is UserRole.PROFESSEUR
            assert auth.user.establishment_id == controller.profile.establishment_id
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.READY
    assert controller.profile is not None
    names = [room.name for room in controller.rooms]
    assert names == ["Salle A", "Salle B", "Salle C"]
    assert all(room.establishment_id == controller.profile.establishment_id for room in controller.rooms)


def test_rooms_page_without_scope_is_not_found(seeded_engine: Engine) -> None:
    async def _run() -> RoomsPageController:
        client = _asgi_client()
        try:
            assert await client.sign_in("stm001", "orphan", "Orphan2024!") is False
            # The orphan has no establishment, so it signs in by token directly.
            with Session(seeded_engine) as session:
                orphan_id = session.exec(select(Profile).where(Profile.username == "orphan")).one().id
            client.set_session(create_access_token(user_id=orphan_id))
            controller = RoomsPageController(AuthContext(client))
            await controller.load()
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.NOT_FOUND
    assert controller.rooms == []


def test_rooms_page_without_session_is_unauthenticated(seeded_engine: Engine) -> None:
    async def _run() -> PageState:
        client = _asgi_client()
        try:
            return await RoomsPageController(AuthContext(client)).load()
        finally:
            await client.aclose()

    assert asyncio.run(_run()) is PageState.UNAUTHENTICATED


def _mock_backend(
    requests: list[str],
    *,
    profile: dict[str, Any] | None,
    profile_status: int = 200,
    rooms_body: str = "[]",
    rooms_gate: asyncio.Event | None = None,
    rooms_started: asyncio.Event | None = None,
) -> BackendClient:
    async def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        assert request.headers["apikey"] == "mock-key"
        if request.url.path == "/api/auth/user":
            return httpx.Response(200, json={"id": "user-1", "email": None})
        if request.url.path.startswith("/api/rest/profiles/"):
            if profile_status != 200:
                return httpx.Response(profile_status, json={"detail": "rejected"})
            if profile is None:
                return httpx.Response(404, json={"detail": "profile not found"})
            return httpx.Response(200, json=profile)
        if request.url.path == "/api/rest/rooms":
            if rooms_started is not None:
                rooms_started.set()
            if rooms_gate is not None:
                await rooms_gate.wait()
            return httpx.Response(200, content=rooms_body, headers={"content-type": "application/json"})
        return httpx.Response(404)

    client = BackendClient("http://backend.local", "mock-key", transport=httpx.MockTransport(_handler))
    client.set_session("token-1")
    return client


def _profile_row(establishment_id: str | None) -> dict[str, Any]:
    stamp = now_utc().isoformat()
    return {
        "id": "user-1",
        "establishment_id": establishment_id,
        "role": "professeur",
        "username": "prof",
        "created_at": stamp,
        "updated_at": stamp,
        "establishment": None,
    }


def test_missing_profile_issues_no_room_query() -> None:
    requests: list[str] = []

    async def _run() -> RoomsPageController:
        client = _mock_backend(requests, profile=None)
        try:
            controller = RoomsPageController(AuthContext(client))
            await controller.load()
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.NOT_FOUND
    assert "/api/rest/rooms" not in requests


def test_null_rooms_body_becomes_empty_list() -> None:
    requests: list[str] = []

    async def _run() -> RoomsPageController:
        client = _mock_backend(requests, profile=_profile_row("school-1"), rooms_body=json.dumps(None))
        try:
            controller = RoomsPageController(AuthContext(client))
            await controller.load()
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.READY
    assert controller.rooms == []


def test_unmount_mid_fetch_leaves_state_untouched() -> None:
    requests: list[str] = []

    async def _run() -> RoomsPageController:
        gate = asyncio.Event()
        started = asyncio.Event()
        client = _mock_backend(
            requests,
            profile=_profile_row("school-1"),
            rooms_body=json.dumps([]),
            rooms_gate=gate,
            rooms_started=started,
        )
        try:
            controller = RoomsPageController(AuthContext(client))
            task = controller.mount()
            await started.wait()
            controller.unmount()
            gate.set()
            with pytest.raises(asyncio.CancelledError):
                await task
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.LOADING
    assert controller.rooms == []
    assert controller.profile is None
    assert not controller.is_mounted


def test_auth_context_resolves_once() -> None:
    requests: list[str] = []

    async def _run() -> AuthContext:
        client = _mock_backend(requests, profile=_profile_row("school-1"))
        try:
            auth = AuthContext(client)
            await asyncio.gather(auth.resolve(), auth.resolve())
            await auth.resolve()
            return auth
        finally:
            await client.aclose()

    auth = asyncio.run(_run())

    assert auth.user is not None
    assert auth.user.id == "user-1"
    assert auth.user.establishment_id == "school-1"
    assert auth.user.role is UserRole.PROFESSEUR
    assert not auth.is_loading
    assert requests.count("/api/auth/user") == 1
    assert requests.count("/api/rest/profiles/user-1") == 1


def test_sign_in_after_a_signed_out_load_is_picked_up(seeded_engine: Engine) -> None:
    async def _run() -> list[PageState]:
        client = _asgi_client()
        try:
            auth = AuthContext(client)
            states = [await RoomsPageController(auth).load()]

            assert await client.sign_in("stm001", "prof.stmarie", "Prof2024!")
            states.append(await RoomsPageController(auth).load())

            auth.sign_out()
            assert client.access_token is None
            assert auth.is_loading
            states.append(await RoomsPageController(auth).load())

            assert await auth.sign_in("stm001", "prof.stmarie", "Prof2024!")
            assert auth.user is None
            states.append(await RoomsPageController(auth).load())
            return states
        finally:
            await client.aclose()

    assert asyncio.run(_run()) == [
        PageState.UNAUTHENTICATED,
        PageState.READY,
        PageState.UNAUTHENTICATED,
        PageState.READY,
    ]


def test_token_rejected_during_profile_lookup_is_unauthenticated() -> None:
    requests: list[str] = []

    async def _run() -> RoomsPageController:
        client = _mock_backend(requests, profile=_profile_row("school-1"), profile_status=401)
        try:
            controller = RoomsPageController(AuthContext(client))
            await controller.load()
            return controller
        finally:
            await client.aclose()

    controller = asyncio.run(_run())

    assert controller.state is PageState.UNAUTHENTICATED
    assert controller.profile is None
    assert "/api/rest/rooms" not in requests


def test_backend_errors_other_than_unauthorized_propagate() -> None:
    requests: list[str] = []

    async def _run() -> None:
        client = _mock_backend(requests, profile=_profile_row("school-1"), profile_status=500)
        try:
            await AuthContext(client).resolve()
        finally:
            await client.aclose()

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(_run())
    assert excinfo.value.status_code == 500
