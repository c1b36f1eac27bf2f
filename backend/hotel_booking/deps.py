import logging
from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .infrastructure.repositories import SqlAlchemyBookingStore
from .models import User, UserRole
from .utils.auth import InvalidCredentials, decode_user_id, extract_bearer

logger = logging.getLogger(__name__)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_principal(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    settings = get_settings()
    try:
        token = extract_bearer(authorization)
        user_id = decode_user_id(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except InvalidCredentials as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers=_UNAUTHORIZED_HEADERS,
        ) from exc

    try:
        role = await session.scalar(select(User.role).where(User.id == user_id))
    except ProgrammingError as exc:
        await session.rollback()
        logger.error("user lookup failed: %s", exc.orig)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user lookup failed") from exc
    # End the implicit read transaction so handlers can open their own with session.begin().
    await session.rollback()
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user not found",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return Principal(user_id=user_id, role=UserRole(role))


def get_booking_store(session: AsyncSession) -> SqlAlchemyBookingStore:
    return SqlAlchemyBookingStore(session, timeout=get_settings().store_timeout_seconds)
