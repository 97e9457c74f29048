"""Registration lifecycle against the database.

Every status change and its seat adjustment are written in one transaction:
if the capacity update is refused or the insert hits the unique constraint,
the whole unit is rolled back and nothing is left half-applied.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core import lifecycle
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.lifecycle import RegStatus
from ..models import Account, Event, PaymentStatus, Registration
from ..schemas import RegistrationAdminUpdate, RegistrationCreate
from .capacity import add_participant, apply_seat_delta
from .events import registration_for

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _load_event(db: AsyncSession, event_id: uuid.UUID) -> Event | None:
    return (await db.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()


async def _refresh(db: AsyncSession, *objs) -> None:
    for obj in objs:
        if obj is not None:
            await db.refresh(obj)


async def register(
    db: AsyncSession, account: Account, event_id: uuid.UUID, details: RegistrationCreate
) -> tuple[Registration, Event]:
    event = await _load_event(db, event_id)
    if not event or not event.is_active:
        raise NotFoundError("Event not found or inactive")
    if event.is_past:
        raise ValidationError("Cannot register for past events")
    if await registration_for(db, account.id, event.id):
        raise ConflictError("You are already registered for this event")

    registration = Registration(
        account_id=account.id,
        event_id=event.id,
        status=RegStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_amount=event.price,
        payment_method=details.payment_method,
        special_requirements=details.special_requirements,
        emergency_contact=details.emergency_contact.model_dump() if details.emergency_contact else None,
    )
    try:
        await add_participant(db, event.id)
        db.add(registration)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You are already registered for this event")
    except Exception:
        await db.rollback()
        raise

    await _refresh(db, registration, event)
    logger.info("Account %s registered for event %s (%d/%d)",
                account.id, event.id, event.current_participants, event.max_participants)
    return registration, event


async def _transition(
    db: AsyncSession, registration: Registration, transition: lifecycle.Transition, *, reason: str | None = None
) -> Registration:
    values: dict = {"status": transition.target}
    if transition.target == RegStatus.CANCELLED and not transition.is_noop:
        values.update(cancellation_reason=reason, cancellation_date=_now())
    elif transition.source == RegStatus.CANCELLED:
        values.update(cancellation_reason=None, cancellation_date=None)

    try:
        # only applies if nobody moved the registration since it was read
        result = await db.execute(
            update(Registration)
            .where(Registration.id == registration.id, Registration.status == transition.source)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info("Registration %s is no longer %s", registration.id, transition.source.value)
            raise ValidationError(f"Registration is no longer {transition.source.value}")
        await apply_seat_delta(db, registration.event_id, transition.seat_delta)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await _refresh(db, registration)
    return registration


async def cancel(db: AsyncSession, registration: Registration, reason: str | None = None) -> Registration:
    if registration.status in lifecycle.TERMINAL:
        raise ValidationError("Cannot cancel this registration")
    registration = await _transition(
        db, registration, lifecycle.plan(registration.status, RegStatus.CANCELLED), reason=reason
    )
    logger.info("Registration %s cancelled", registration.id)
    return registration


async def confirm(db: AsyncSession, registration: Registration) -> Registration:
    return await _transition(db, registration, lifecycle.plan(registration.status, RegStatus.CONFIRMED))


async def complete(db: AsyncSession, registration: Registration) -> Registration:
    return await _transition(db, registration, lifecycle.plan(registration.status, RegStatus.COMPLETED))


async def force_transition(
    db: AsyncSession, admin: Account, registration: Registration, payload: RegistrationAdminUpdate
) -> Registration:
    """Admin override: any status may be set, but the event's seat count follows it."""
    if payload.notes:
        registration.notes = payload.notes
    if payload.payment_status is not None:
        registration.payment_status = payload.payment_status
    if payload.refund_amount is not None:
        registration.refund_amount = payload.refund_amount

    if payload.status is None or payload.status == registration.status:
        await db.commit()
        await _refresh(db, registration)
        return registration

    transition = lifecycle.force(registration.status, payload.status)
    registration = await _transition(
        db, registration, transition, reason=payload.notes or "Cancelled by admin"
    )
    logger.warning("Admin %s forced registration %s from %s to %s",
                   admin.id, registration.id, transition.source.value, transition.target.value)
    return registration


# ---- lookups ----
async def get_own_for_event(db: AsyncSession, account: Account, event_id: uuid.UUID) -> Registration:
    registration = await registration_for(db, account.id, event_id)
    if not registration:
        raise NotFoundError("Registration not found")
    return registration


async def get_for_event(db: AsyncSession, event: Event, registration_id: uuid.UUID) -> Registration:
    registration = (await db.execute(
        select(Registration).where(Registration.id == registration_id)
    )).scalar_one_or_none()
    if not registration or registration.event_id != event.id:
        raise NotFoundError("Registration not found")
    return registration


async def list_for_account(
    db: AsyncSession, account: Account, *, page: int, limit: int, status: RegStatus | None = None
) -> tuple[Sequence[Registration], int]:
    conds = [Registration.account_id == account.id]
    if status:
        conds.append(Registration.status == status)
    total = (await db.execute(select(func.count()).select_from(Registration).where(*conds))).scalar_one()
    rows = (await db.execute(
        select(Registration).where(*conds)
        .options(selectinload(Registration.event))
        .order_by(Registration.registration_date.desc())
        .offset((page - 1) * limit).limit(limit)
    )).scalars().all()
    return rows, total
