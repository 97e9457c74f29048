from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.responses import ok
from ..deps import get_db, require_user
from ..models import Account
from ..schemas import AccountRead, PasswordChange, ProfileUpdate
from ..services import accounts, auth_service

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/dashboard")
async def dashboard(account: Account = Depends(require_user), db: AsyncSession = Depends(get_db)):
    stats = await accounts.user_stats(db, account)
    return ok({"user": AccountRead.model_validate(account), "stats": stats})


@router.get("/profile")
async def profile(account: Account = Depends(require_user)):
    return ok({"user": AccountRead.model_validate(account)})


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    account: Account = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    account = await accounts.update_profile(
        db,
        account,
        name=payload.name,
        phone=payload.phone,
        address=payload.address.model_dump(exclude_none=True) if payload.address else None,
    )
    return ok({"user": AccountRead.model_validate(account)}, "Profile updated successfully")


@router.put("/change-password")
async def change_password(
    payload: PasswordChange,
    account: Account = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(
        db, account, current_password=payload.current_password, new_password=payload.new_password
    )
    return ok(message="Password changed successfully")


@router.patch("/deactivate")
async def deactivate(account: Account = Depends(require_user), db: AsyncSession = Depends(get_db)):
    await accounts.deactivate_self(db, account)
    return ok(message="Account deactivated successfully")
