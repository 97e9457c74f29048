from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncGenerator, Awaitable, Callable
from uuid import UUID

import jwt
from fastapi import Depends, Header, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.errors import AuthError, AuthzError
from .core.security import decode_access_token
from .db import get_session
from .models import Account, AccountRole

settings = get_settings()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthError("Access token required")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise AuthError("Access token required")
    return token


async def _resolve(db: AsyncSession, token: str) -> Account:
    try:
        payload = decode_access_token(token)
        sub = UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except (jwt.PyJWTError, KeyError, ValueError):
        raise AuthError("Invalid token")

    account = (await db.execute(select(Account).where(Account.id == sub))).scalar_one_or_none()
    if not account:
        raise AuthError("Invalid token")
    if not account.is_active:
        raise AuthError("Account is deactivated")
    return account


async def get_current_account(
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Account:
    return await _resolve(db, _bearer_token(authorization))


async def get_optional_account(
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Account | None:
    if not authorization:
        return None
    try:
        return await _resolve(db, _bearer_token(authorization))
    except AuthError:
        return None


def require_role(role: AccountRole) -> Callable[..., Awaitable[Account]]:
    denied = {
        AccountRole.ADMIN: "Admin access required",
        AccountRole.USER: "User access required",
    }[role]

    async def _checker(account: Account = Depends(get_current_account)) -> Account:
        if account.role != role:
            raise AuthzError(denied)
        return account
    return _checker


require_user = require_role(AccountRole.USER)
require_admin = require_role(AccountRole.ADMIN)


@dataclass
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> PageParams:
    size = min(limit or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, limit=size)
