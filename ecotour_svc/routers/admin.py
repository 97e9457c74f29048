from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.responses import ok
from ..deps import PageParams, get_db, page_params, require_admin
from ..models import Account, AccountRole
from ..schemas import AccountRead, AccountStatusUpdate, Pagination
from ..services import accounts

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
async def dashboard(actor: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    data = await accounts.admin_dashboard(db)
    return ok({
        "stats": data["stats"],
        "recent_users": [AccountRead.model_validate(a) for a in data["recent_users"]],
    })


@router.get("/users")
async def list_users(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    role: AccountRole | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="status"),
    actor: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await accounts.list_accounts(
        db, page=paging.page, limit=paging.limit, search=search, role=role, is_active=is_active
    )
    return ok({
        "users": [AccountRead.model_validate(a) for a in rows],
        "pagination": Pagination.build(page=paging.page, limit=paging.limit, total=total),
    })


@router.get("/users/{account_id}")
async def get_user(account_id: uuid.UUID, actor: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    account = await accounts.get_account(db, account_id)
    return ok({"user": AccountRead.model_validate(account)})


@router.patch("/users/{account_id}/status")
async def set_user_status(
    account_id: uuid.UUID,
    payload: AccountStatusUpdate,
    actor: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    account = await accounts.set_account_status(db, actor, account_id, payload.is_active)
    word = "activated" if account.is_active else "deactivated"
    return ok({"user": AccountRead.model_validate(account)}, f"User {word} successfully")


@router.delete("/users/{account_id}")
async def delete_user(account_id: uuid.UUID, actor: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await accounts.delete_account(db, actor, account_id)
    return ok(message="User deleted successfully")
