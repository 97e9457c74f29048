from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.lifecycle import RegStatus
from ..core.responses import ok
from ..deps import PageParams, get_db, page_params, require_admin
from ..models import Account, Event, EventCategory
from ..schemas import (
    EventCapacity,
    EventCreate,
    EventRead,
    EventStatusUpdate,
    EventSummary,
    EventUpdate,
    Pagination,
    ProgressUpdate,
    RegistrationAdminUpdate,
    RegistrationCancel,
    RegistrationRead,
    RegistrationWithAccount,
)
from ..services import events as event_service
from ..services import registrations as registration_service

router = APIRouter(prefix="/admin/events", tags=["admin-events"])


@router.get("/dashboard")
async def dashboard(admin: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    data = await event_service.admin_dashboard(db, admin)
    return ok({"events": [EventSummary.model_validate(e) for e in data["events"]], "stats": data["stats"]})


@router.get("")
async def list_my_events(
    paging: PageParams = Depends(page_params),
    search: str | None = Query(default=None),
    category: EventCategory | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await event_service.list_owned(
        db, admin,
        page=paging.page, limit=paging.limit,
        search=search, category=category, status=status_filter,
        sort_by=sort_by, sort_order=sort_order,
    )
    return ok({
        "events": [EventRead.model_validate(e) for e in rows],
        "pagination": Pagination.build(page=paging.page, limit=paging.limit, total=total),
        "filters": {
            "categories": await event_service.categories(db, Event.created_by == admin.id),
            "search": search,
            "category": category,
            "status": status_filter,
        },
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreate, admin: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    event = await event_service.create_event(db, admin, payload)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=ok({"event": EventRead.model_validate(event)}, "Event created successfully"),
    )


@router.get("/{event_id}")
async def get_my_event(event_id: uuid.UUID, admin: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    event = await event_service.get_owned(db, admin, event_id)
    return ok({"event": EventRead.model_validate(event)})


@router.put("/{event_id}")
async def update_event(
    event_id: uuid.UUID,
    payload: EventUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, admin, event_id, payload)
    return ok({"event": EventRead.model_validate(event)}, "Event updated successfully")


@router.patch("/{event_id}/progress")
async def update_progress(
    event_id: uuid.UUID,
    payload: ProgressUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.set_progress(db, admin, event_id, payload.progress)
    return ok(
        {"event": {"id": event.id, "title": event.title, "progress": event.progress}},
        "Event progress updated successfully",
    )


@router.patch("/{event_id}/status")
async def update_status(
    event_id: uuid.UUID,
    payload: EventStatusUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.set_status(db, admin, event_id, payload.status)
    return ok(
        {"event": {"id": event.id, "title": event.title, "status": event.status}},
        "Event status updated successfully",
    )


@router.delete("/{event_id}")
async def delete_event(event_id: uuid.UUID, admin: Account = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await event_service.delete_event(db, admin, event_id)
    return ok(message="Event deleted successfully")


@router.get("/{event_id}/registrations")
async def list_registrations(
    event_id: uuid.UUID,
    paging: PageParams = Depends(page_params),
    status_filter: RegStatus | None = Query(default=None, alias="status"),
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event, rows, total = await event_service.list_event_registrations(
        db, admin, event_id, page=paging.page, limit=paging.limit, status=status_filter
    )
    return ok({
        "event": EventCapacity(
            id=event.id, title=event.title,
            current_participants=event.current_participants, max_participants=event.max_participants,
        ),
        "registrations": [RegistrationWithAccount.model_validate(r) for r in rows],
        "pagination": Pagination.build(page=paging.page, limit=paging.limit, total=total),
    })


async def _owned_registration(db: AsyncSession, admin: Account, event_id: uuid.UUID, registration_id: uuid.UUID):
    event = await event_service.get_owned(db, admin, event_id)
    return await registration_service.get_for_event(db, event, registration_id)


@router.patch("/{event_id}/registrations/{registration_id}")
async def update_registration(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    payload: RegistrationAdminUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reg = await _owned_registration(db, admin, event_id, registration_id)
    reg = await registration_service.force_transition(db, admin, reg, payload)
    return ok({"registration": RegistrationRead.model_validate(reg)}, "Registration updated successfully")


@router.post("/{event_id}/registrations/{registration_id}/confirm")
async def confirm_registration(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reg = await _owned_registration(db, admin, event_id, registration_id)
    reg = await registration_service.confirm(db, reg)
    return ok({"registration": RegistrationRead.model_validate(reg)}, "Registration confirmed")


@router.post("/{event_id}/registrations/{registration_id}/complete")
async def complete_registration(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reg = await _owned_registration(db, admin, event_id, registration_id)
    reg = await registration_service.complete(db, reg)
    return ok({"registration": RegistrationRead.model_validate(reg)}, "Registration completed")


@router.post("/{event_id}/registrations/{registration_id}/cancel")
async def cancel_registration(
    event_id: uuid.UUID,
    registration_id: uuid.UUID,
    payload: RegistrationCancel | None = None,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reg = await _owned_registration(db, admin, event_id, registration_id)
    reg = await registration_service.cancel(db, reg, payload.reason if payload else None)
    return ok({"registration": RegistrationRead.model_validate(reg)}, "Registration cancelled successfully")
