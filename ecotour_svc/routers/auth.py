from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.jwks import jwks_document
from ..core.responses import ok
from ..deps import get_current_account, get_db, require_admin
from ..models import Account, AccountRole
from ..schemas import AccountRead, LoginRequest, PasswordChange, ProfileUpdate, SignUpRequest
from ..services import accounts, auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _address(payload) -> dict | None:
    return payload.address.model_dump(exclude_none=True) if payload.address else None


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(payload: SignUpRequest, db: AsyncSession = Depends(get_db)):
    account, token = await auth_service.signup(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        address=_address(payload),
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ok({"user": AccountRead.model_validate(account), "token": token}, "User registered successfully"),
    )


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    account, token = await auth_service.login(db, email=payload.email, password=payload.password)
    return ok(
        {
            "user": AccountRead.model_validate(account),
            "token": token,
            "redirect_to": "/admin/dashboard" if account.is_admin else "/user/dashboard",
        },
        "Login successful",
    )


@router.post("/admin/signup", status_code=status.HTTP_201_CREATED)
async def admin_signup(
    payload: SignUpRequest,
    actor: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    account = await auth_service.create_account(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=AccountRole.ADMIN,
        phone=payload.phone,
        address=_address(payload),
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ok({"user": AccountRead.model_validate(account)}, "Admin user created successfully"),
    )


@router.get("/profile")
async def profile(account: Account = Depends(get_current_account)):
    return ok({"user": AccountRead.model_validate(account)})


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    account = await accounts.update_profile(
        db, account, name=payload.name, phone=payload.phone, address=_address(payload)
    )
    return ok({"user": AccountRead.model_validate(account)}, "Profile updated successfully")


@router.put("/change-password")
async def change_password(
    payload: PasswordChange,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(
        db, account, current_password=payload.current_password, new_password=payload.new_password
    )
    return ok(message="Password changed successfully")


@router.post("/logout")
async def logout():
    # tokens are stateless; the client drops its copy
    return ok(message="Logout successful")


@router.get("/jwks")
async def jwks():
    # plain JWKS, not wrapped in the response envelope
    return jwks_document()
