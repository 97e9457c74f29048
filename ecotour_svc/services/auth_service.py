from __future__ import annotations

import logging
import uuid
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.errors import AuthError, ConflictError
from ..core.security import create_access_token, hash_password, verify_password
from ..models import Account, AccountRole, Credential

settings = get_settings()
logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_by_email(db: AsyncSession, email: str) -> Account | None:
    return (await db.execute(
        select(Account).where(Account.email == _normalize_email(email))
    )).scalar_one_or_none()


async def find_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
    return (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()


async def create_account(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
    role: AccountRole,
    phone: str | None = None,
    address: dict | None = None,
) -> Account:
    # ensure unique email
    if await find_by_email(db, email):
        raise ConflictError("User with this email already exists")

    account = Account(
        id=uuid.uuid4(),
        name=name,
        email=_normalize_email(email),
        phone=phone,
        address=address,
        role=role,
        is_active=True,
    )
    db.add(account)
    db.add(Credential(account_id=account.id, password_hash=hash_password(password)))
    try:
        await db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        await db.rollback()
        raise ConflictError("User with this email already exists")
    logger.info("Created %s account %s", role.value, account.id)
    return account


def issue_token(account: Account) -> str:
    return create_access_token(account_id=account.id, role=account.role.value)


async def signup(db: AsyncSession, *, name: str, email: str, password: str,
                 phone: str | None = None, address: dict | None = None) -> Tuple[Account, str]:
    account = await create_account(
        db, name=name, email=email, password=password,
        role=AccountRole.USER, phone=phone, address=address,
    )
    return account, issue_token(account)


async def login(db: AsyncSession, *, email: str, password: str) -> Tuple[Account, str]:
    account = await find_by_email(db, email)
    if not account:
        raise AuthError("Invalid email or password")
    if not account.is_active:
        raise AuthError("Account is deactivated")

    cred = (await db.execute(
        select(Credential).where(Credential.account_id == account.id)
    )).scalar_one_or_none()
    if not cred or not verify_password(password, cred.password_hash):
        raise AuthError("Invalid email or password")
    return account, issue_token(account)


async def change_password(db: AsyncSession, account: Account, *, current_password: str, new_password: str) -> None:
    cred = (await db.execute(
        select(Credential).where(Credential.account_id == account.id)
    )).scalar_one_or_none()
    if not cred or not verify_password(current_password, cred.password_hash):
        raise AuthError("Current password is incorrect")
    cred.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("Password changed for account %s", account.id)


async def ensure_bootstrap_admin(db: AsyncSession) -> None:
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        return
    if await find_by_email(db, email):
        return
    await create_account(
        db, name=settings.bootstrap_admin_name, email=email,
        password=password, role=AccountRole.ADMIN,
    )
    logger.info("Bootstrap admin %s created", email)
