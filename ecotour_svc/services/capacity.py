"""Seat accounting for events.

Both operations are a single conditional UPDATE, so the check and the write
happen atomically in the database and concurrent registrations cannot push
``current_participants`` past ``max_participants``. Neither commits: they run
inside the caller's transaction together with the registration write.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import CapacityExceeded, NoParticipantsToRemove
from ..models import Event

logger = logging.getLogger(__name__)


async def add_participant(db: AsyncSession, event_id: uuid.UUID) -> None:
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.current_participants < Event.max_participants)
        .values(current_participants=Event.current_participants + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("Event %s is full, seat refused", event_id)
        raise CapacityExceeded()


async def remove_participant(db: AsyncSession, event_id: uuid.UUID) -> None:
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.current_participants > 0)
        .values(current_participants=Event.current_participants - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning("Event %s has no participants to remove", event_id)
        raise NoParticipantsToRemove()


async def apply_seat_delta(db: AsyncSession, event_id: uuid.UUID, delta: int) -> None:
    if delta > 0:
        await add_participant(db, event_id)
    elif delta < 0:
        await remove_participant(db, event_id)
