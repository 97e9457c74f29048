from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.errors import NotFoundError, ValidationError
from ..core.lifecycle import RegStatus
from ..models import Account, Event, EventCategory, EventStatus, Registration
from ..schemas import EventCreate, EventUpdate

logger = logging.getLogger(__name__)

SORTABLE = {
    "date": Event.date,
    "price": Event.price,
    "title": Event.title,
    "created_at": Event.created_at,
    "progress": Event.progress,
    "max_participants": Event.max_participants,
}

# not changeable once anyone has registered
LOCKED_WHEN_BOOKED = ("max_participants", "price")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _filters(*, search: str | None, category: EventCategory | None, status: str | None) -> list:
    conds = []
    if search:
        like = f"%{search}%"
        conds.append(or_(Event.title.ilike(like), Event.description.ilike(like), Event.location.ilike(like)))
    if category:
        conds.append(Event.category == category)
    if status and status != "all":
        try:
            conds.append(Event.status == EventStatus(status))
        except ValueError:
            raise ValidationError("Invalid status value")
    return conds


def _order(sort_by: str, sort_order: str):
    column = SORTABLE.get(sort_by)
    if column is None:
        raise ValidationError(f"Cannot sort by {sort_by}")
    return column.desc() if sort_order == "desc" else column.asc()


async def _page(db: AsyncSession, conds: list, *, order, page: int, limit: int) -> tuple[Sequence[Event], int]:
    total = (await db.execute(select(func.count()).select_from(Event).where(*conds))).scalar_one()
    rows = (await db.execute(
        select(Event).where(*conds).order_by(order).offset((page - 1) * limit).limit(limit)
    )).scalars().all()
    return rows, total


async def categories(db: AsyncSession, *conds) -> list[EventCategory]:
    rows = (await db.execute(select(Event.category).distinct().where(*conds))).scalars().all()
    return sorted(rows, key=lambda c: c.value)


async def has_registrations(db: AsyncSession, event_id: uuid.UUID) -> bool:
    found = (await db.execute(
        select(Registration.id).where(Registration.event_id == event_id).limit(1)
    )).scalar_one_or_none()
    return found is not None


# ---- public catalog ----
async def list_public(
    db: AsyncSession,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    category: EventCategory | None = None,
    status: str | None = "upcoming",
    sort_by: str = "date",
    sort_order: str = "asc",
) -> tuple[Sequence[Event], int]:
    conds = [Event.is_active == True, *_filters(search=search, category=category, status=status)]
    return await _page(db, conds, order=_order(sort_by, sort_order), page=page, limit=limit)


async def get_public(db: AsyncSession, event_id: uuid.UUID) -> Event:
    event = (await db.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
    if not event or not event.is_active:
        raise NotFoundError("Event not found")
    return event


async def registration_for(db: AsyncSession, account_id: uuid.UUID, event_id: uuid.UUID) -> Registration | None:
    return (await db.execute(select(Registration).where(
        Registration.account_id == account_id, Registration.event_id == event_id
    ))).scalar_one_or_none()


# ---- admin catalog (ownership enforced: someone else's event is reported as missing) ----
async def get_owned(db: AsyncSession, admin: Account, event_id: uuid.UUID) -> Event:
    event = (await db.execute(
        select(Event).where(Event.id == event_id, Event.created_by == admin.id)
    )).scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


async def list_owned(
    db: AsyncSession,
    admin: Account,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    category: EventCategory | None = None,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> tuple[Sequence[Event], int]:
    conds = [Event.created_by == admin.id, *_filters(search=search, category=category, status=status)]
    return await _page(db, conds, order=_order(sort_by, sort_order), page=page, limit=limit)


async def create_event(db: AsyncSession, admin: Account, payload: EventCreate) -> Event:
    if payload.date <= _now():
        raise ValidationError("Event date must be in the future")

    event = Event(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        date=payload.date,
        location=payload.location,
        latitude=payload.coordinates.latitude if payload.coordinates else None,
        longitude=payload.coordinates.longitude if payload.coordinates else None,
        images=[i.model_dump() for i in payload.images],
        requirements=payload.requirements,
        highlights=payload.highlights,
        organizer=payload.organizer.model_dump() if payload.organizer else {},
        max_participants=payload.max_participants,
        current_participants=0,
        price=payload.price,
        duration_hours=payload.duration_hours,
        difficulty=payload.difficulty,
        status=EventStatus.UPCOMING,
        progress=0,
        created_by=admin.id,
        is_active=True,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info("Admin %s created event %s", admin.id, event.id)
    return event


async def update_event(db: AsyncSession, admin: Account, event_id: uuid.UUID, payload: EventUpdate) -> Event:
    event = await get_owned(db, admin, event_id)
    data = payload.model_dump(exclude_unset=True)

    if await has_registrations(db, event.id):
        for field in LOCKED_WHEN_BOOKED:
            data.pop(field, None)

    if "coordinates" in data:
        coords = data.pop("coordinates")
        event.latitude = coords["latitude"] if coords else None
        event.longitude = coords["longitude"] if coords else None

    for key, value in data.items():
        if value is not None:
            setattr(event, key, value)

    if event.current_participants > event.max_participants:
        raise ValidationError("max_participants cannot be below current participants")

    await db.commit()
    await db.refresh(event)
    return event


async def set_progress(db: AsyncSession, admin: Account, event_id: uuid.UUID, progress: float) -> Event:
    event = await get_owned(db, admin, event_id)
    event.set_progress(progress)
    await db.commit()
    return event


async def set_status(db: AsyncSession, admin: Account, event_id: uuid.UUID, status: EventStatus) -> Event:
    event = await get_owned(db, admin, event_id)
    event.status = status
    await db.commit()
    logger.info("Admin %s set event %s status to %s", admin.id, event.id, status.value)
    return event


async def delete_event(db: AsyncSession, admin: Account, event_id: uuid.UUID) -> None:
    event = await get_owned(db, admin, event_id)
    if await has_registrations(db, event.id):
        raise ValidationError("Cannot delete event with existing registrations")
    await db.delete(event)
    await db.commit()
    logger.info("Admin %s deleted event %s", admin.id, event_id)


async def admin_dashboard(db: AsyncSession, admin: Account) -> dict[str, Any]:
    owned = Event.created_by == admin.id

    async def _count(*conds) -> int:
        return (await db.execute(select(func.count()).select_from(Event).where(owned, *conds))).scalar_one()

    events = (await db.execute(select(Event).where(owned).order_by(Event.created_at.desc()))).scalars().all()
    total_registrations = (await db.execute(
        select(func.count()).select_from(Registration)
        .join(Event, Event.id == Registration.event_id).where(owned)
    )).scalar_one()
    return {
        "events": events,
        "stats": {
            "total_events": await _count(),
            "active_events": await _count(Event.is_active == True),
            "upcoming_events": await _count(Event.status == EventStatus.UPCOMING, Event.date > _now()),
            "total_registrations": total_registrations,
        },
    }


async def list_event_registrations(
    db: AsyncSession,
    admin: Account,
    event_id: uuid.UUID,
    *,
    page: int,
    limit: int,
    status: RegStatus | None = None,
) -> tuple[Event, Sequence[Registration], int]:
    event = await get_owned(db, admin, event_id)
    conds = [Registration.event_id == event.id]
    if status:
        conds.append(Registration.status == status)
    total = (await db.execute(select(func.count()).select_from(Registration).where(*conds))).scalar_one()
    rows = (await db.execute(
        select(Registration).where(*conds)
        .options(selectinload(Registration.account))
        .order_by(Registration.registration_date.desc())
        .offset((page - 1) * limit).limit(limit)
    )).scalars().all()
    return event, rows, total
