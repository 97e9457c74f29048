from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import AuthzError, NotFoundError, ValidationError
from ..core.lifecycle import SEAT_HOLDING, RegStatus
from ..models import Account, AccountRole, Registration
from .auth_service import find_by_id
from .capacity import remove_participant

logger = logging.getLogger(__name__)


async def update_profile(
    db: AsyncSession, account: Account, *, name: str | None, phone: str | None, address: dict | None
) -> Account:
    if name:
        account.name = name
    if phone:
        account.phone = phone
    if address:
        account.address = address
    await db.commit()
    await db.refresh(account)
    return account


async def deactivate_self(db: AsyncSession, account: Account) -> None:
    account.is_active = False
    await db.commit()
    logger.info("Account %s deactivated itself", account.id)


async def user_stats(db: AsyncSession, account: Account) -> dict[str, Any]:
    async def _count(*conds) -> int:
        q = select(func.count()).select_from(Registration).where(Registration.account_id == account.id, *conds)
        return (await db.execute(q)).scalar_one()

    return {
        "total_registrations": await _count(),
        "active_registrations": await _count(Registration.status.in_(SEAT_HOLDING)),
        "completed_events": await _count(Registration.status == RegStatus.COMPLETED),
        "member_since": account.created_at,
    }


async def admin_dashboard(db: AsyncSession) -> dict[str, Any]:
    async def _count(*conds) -> int:
        return (await db.execute(select(func.count()).select_from(Account).where(*conds))).scalar_one()

    recent = (await db.execute(
        select(Account).where(Account.role == AccountRole.USER)
        .order_by(Account.created_at.desc()).limit(10)
    )).scalars().all()
    return {
        "stats": {
            "total_users": await _count(Account.role == AccountRole.USER),
            "total_admins": await _count(Account.role == AccountRole.ADMIN),
            "active_users": await _count(Account.role == AccountRole.USER, Account.is_active == True),
            "inactive_users": await _count(Account.role == AccountRole.USER, Account.is_active == False),
        },
        "recent_users": recent,
    }


async def list_accounts(
    db: AsyncSession,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    role: AccountRole | None = None,
    is_active: bool | None = None,
) -> tuple[Sequence[Account], int]:
    conds = []
    if search:
        like = f"%{search}%"
        conds.append(or_(Account.name.ilike(like), Account.email.ilike(like)))
    if role:
        conds.append(Account.role == role)
    if is_active is not None:
        conds.append(Account.is_active == is_active)

    total = (await db.execute(select(func.count()).select_from(Account).where(*conds))).scalar_one()
    rows = (await db.execute(
        select(Account).where(*conds)
        .order_by(Account.created_at.desc())
        .offset((page - 1) * limit).limit(limit)
    )).scalars().all()
    return rows, total


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Account:
    account = await find_by_id(db, account_id)
    if not account:
        raise NotFoundError("User not found")
    return account


async def set_account_status(db: AsyncSession, actor: Account, account_id: uuid.UUID, is_active: bool) -> Account:
    account = await get_account(db, account_id)
    if account.id == actor.id:
        raise ValidationError("Cannot deactivate your own account")
    account.is_active = is_active
    await db.commit()
    logger.info("Admin %s set account %s active=%s", actor.id, account.id, is_active)
    return account


async def delete_account(db: AsyncSession, actor: Account, account_id: uuid.UUID) -> None:
    """Hard-delete a user account, giving back the seats its live registrations hold."""
    account = await get_account(db, account_id)
    if account.id == actor.id:
        raise ValidationError("Cannot delete your own account")
    if account.role == AccountRole.ADMIN:
        raise AuthzError("Cannot delete admin accounts")

    held = (await db.execute(
        select(Registration.event_id).where(
            Registration.account_id == account.id, Registration.status.in_(SEAT_HOLDING)
        )
    )).scalars().all()
    try:
        for event_id in held:
            await remove_participant(db, event_id)
        await db.execute(delete(Registration).where(Registration.account_id == account.id))
        await db.delete(account)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Admin %s deleted account %s (%d seats released)", actor.id, account.id, len(held))
