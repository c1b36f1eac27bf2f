from datetime import timedelta
from typing import Any

import pytest
from fastapi import HTTPException
from hotel_booking.config import Settings, get_settings
from hotel_booking.deps import get_current_principal
from hotel_booking.models import UserRole
from hotel_booking.utils.auth import create_access_token

SECRET = "test-secret-with-at-least-32-bytes!"
from sqlalchemy.exc import ProgrammingError


class DummySession:
    def __init__(self, role: str | None | Exception) -> None:
        self.role = role
        self.rollbacks = 0

    async def scalar(self, *args: Any, **kwargs: Any) -> str | None:
        if isinstance(self.role, Exception):
            raise self.role
        return self.role

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture(autouse=True)
def _set_auth_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_SECRET", SECRET)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _token(user_id: int, *, expires_delta: timedelta | None = None) -> str:
    settings = Settings(auth_secret=SECRET)
    return create_access_token(
        user_id=user_id,
        secret=settings.auth_secret,
        algorithm=settings.auth_algorithm,
        expires_delta=expires_delta,
    )


@pytest.mark.asyncio
async def test_resolves_user_and_role() -> None:
    session = DummySession(role="admin")
    principal = await get_current_principal(authorization=f"Bearer {_token(123)}", session=session)  # type: ignore[arg-type]
    assert principal.user_id == 123
    assert principal.role == UserRole.ADMIN
    assert principal.is_admin
    assert session.rollbacks == 1


@pytest.mark.asyncio
async def test_rejects_missing_header() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_principal(authorization=None, session=DummySession(role="user"))  # type: ignore[arg-type]
    assert excinfo.value.status_code == 401
    assert excinfo.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_rejects_non_bearer_scheme() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_principal(authorization=f"Basic {_token(1)}", session=DummySession(role="user"))  # type: ignore[arg-type]
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_rejects_expired_token() -> None:
    token = _token(1, expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as excinfo:
        await get_current_principal(authorization=f"Bearer {token}", session=DummySession(role="user"))  # type: ignore[arg-type]
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_rejects_when_user_missing() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_current_principal(authorization=f"Bearer {_token(99)}", session=DummySession(role=None))  # type: ignore[arg-type]
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_missing_users_table_is_server_error() -> None:
    session = DummySession(role=ProgrammingError("missing", None, Exception("cause")))
    with pytest.raises(HTTPException) as excinfo:
        await get_current_principal(authorization=f"Bearer {_token(1)}", session=session)  # type: ignore[arg-type]
    assert excinfo.value.status_code == 500
