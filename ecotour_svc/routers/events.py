from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.lifecycle import RegStatus
from ..core.responses import ok
from ..deps import PageParams, get_db, get_optional_account, page_params, require_user
from ..models import Account, EventCategory
from ..schemas import (
    EventCapacity,
    EventRead,
    EventSummary,
    Pagination,
    RegistrationBrief,
    RegistrationCancel,
    RegistrationCreate,
    RegistrationRead,
    RegistrationWithEvent,
)
from ..services import events as event_service
from ..services import registrations as registration_service

router = APIRouter(prefix="/events", tags=["events"])


@router.get("")
async def list_events(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    category: EventCategory | None = Query(default=None),
    status_filter: str | None = Query(default="upcoming", alias="status"),
    sort_by: str = Query(default="date"),
    sort_order: str = Query(default="asc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await event_service.list_public(
        db,
        page=paging.page,
        limit=paging.limit,
        search=search,
        category=category,
        status=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok({
        "events": [EventSummary.model_validate(e) for e in rows],
        "pagination": Pagination.build(page=paging.page, limit=paging.limit, total=total),
        "filters": {
            "categories": await event_service.categories(db),
            "search": search,
            "category": category,
            "status": status_filter,
        },
    })


# declared before /{event_id} so "user" is not parsed as an id
@router.get("/user/registrations")
async def my_registrations(
    paging: PageParams = Depends(page_params),
    status_filter: RegStatus | None = Query(default=None, alias="status"),
    account: Account = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await registration_service.list_for_account(
        db, account, page=paging.page, limit=paging.limit, status=status_filter
    )
    return ok({
        "registrations": [RegistrationWithEvent.model_validate(r) for r in rows],
        "pagination": Pagination.build(page=paging.page, limit=paging.limit, total=total),
    })


@router.get("/{event_id}")
async def get_event(
    event_id: uuid.UUID,
    viewer: Account | None = Depends(get_optional_account),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_public(db, event_id)
    mine = None
    if viewer:
        reg = await event_service.registration_for(db, viewer.id, event.id)
        mine = RegistrationBrief.model_validate(reg) if reg else None
    return ok({"event": EventRead.model_validate(event), "user_registration": mine})


@router.post("/{event_id}/register", status_code=status.HTTP_201_CREATED)
async def register_for_event(
    event_id: uuid.UUID,
    payload: RegistrationCreate | None = None,
    account: Account = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    registration, event = await registration_service.register(
        db, account, event_id, payload or RegistrationCreate()
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ok(
            {
                "registration": RegistrationRead.model_validate(registration),
                "event": EventCapacity(
                    id=event.id,
                    title=event.title,
                    current_participants=event.current_participants,
                    max_participants=event.max_participants,
                ),
            },
            "Successfully registered for event",
        ),
    )


@router.delete("/{event_id}/register")
async def cancel_registration(
    event_id: uuid.UUID,
    payload: RegistrationCancel | None = None,
    account: Account = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    registration = await registration_service.get_own_for_event(db, account, event_id)
    registration = await registration_service.cancel(db, registration, payload.reason if payload else None)
    return ok(
        {"registration": RegistrationRead.model_validate(registration)},
        "Registration cancelled successfully",
    )
