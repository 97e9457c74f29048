from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from .core.lifecycle import RegStatus, holds_seat

Base = declarative_base()

def _now() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class AccountRole(str, Enum):
    USER = "user"
    ADMIN = "admin"

class EventCategory(str, Enum):
    WILDLIFE_SAFARI = "Wildlife Safari"
    NATURE_TREK = "Nature Trek"
    BIRD_WATCHING = "Bird Watching"
    CONSERVATION = "Conservation"
    CULTURAL_TOUR = "Cultural Tour"
    ADVENTURE = "Adventure"
    PHOTOGRAPHY = "Photography"
    OTHER = "Other"

class Difficulty(str, Enum):
    EASY = "Easy"
    MODERATE = "Moderate"
    CHALLENGING = "Challenging"
    EXPERT = "Expert"

class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"

class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    OTHER = "other"


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        Index("ix_accounts_role_active", "role", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(64))
    address: Mapped[dict | None] = mapped_column(JSON)
    role: Mapped[AccountRole] = mapped_column(SqlEnum(AccountRole), default=AccountRole.USER, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    credentials: Mapped["Credential"] = relationship(
        "Credential", back_populates="account", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN


class Credential(Base):
    __tablename__ = "credentials"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    account: Mapped[Account] = relationship("Account", back_populates="credentials")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_events_max_participants_pos"),
        CheckConstraint("current_participants >= 0", name="ck_events_current_participants_nonneg"),
        CheckConstraint("current_participants <= max_participants", name="ck_events_not_overbooked"),
        CheckConstraint("price >= 0", name="ck_events_price_nonneg"),
        CheckConstraint("duration_hours >= 0.5", name="ck_events_duration_min"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_events_progress_range"),
        Index("ix_events_category_date_status", "category", "date", "status"),
        Index("ix_events_created_by", "created_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[EventCategory] = mapped_column(SqlEnum(EventCategory), default=EventCategory.OTHER, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    images: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    requirements: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    highlights: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    organizer: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    current_participants: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    duration_hours: Mapped[float] = mapped_column(Float, nullable=False)
    difficulty: Mapped[Difficulty] = mapped_column(SqlEnum(Difficulty), default=Difficulty.MODERATE, nullable=False)
    status: Mapped[EventStatus] = mapped_column(SqlEnum(EventStatus), default=EventStatus.UPCOMING, nullable=False)
    progress: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    created_by: Mapped[uuid.UUID] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    @property
    def available_spots(self) -> int:
        return max(self.max_participants - self.current_participants, 0)

    @property
    def is_upcoming(self) -> bool:
        return as_utc(self.date) > _now() and self.status == EventStatus.UPCOMING

    @property
    def is_past(self) -> bool:
        return as_utc(self.date) < _now()

    def set_progress(self, progress: float) -> float:
        self.progress = max(0.0, min(100.0, float(progress)))
        return self.progress


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("account_id", "event_id", name="uq_registrations_account_event"),
        Index("ix_regs_account_status", "account_id", "status"),
        Index("ix_regs_event_status", "event_id", "status"),
        Index("ix_regs_status_date", "status", "registration_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)

    status: Mapped[RegStatus] = mapped_column(SqlEnum(RegStatus), default=RegStatus.PENDING, nullable=False)
    registration_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SqlEnum(PaymentMethod), default=PaymentMethod.OTHER, nullable=False
    )
    special_requirements: Mapped[str | None] = mapped_column(Text)
    emergency_contact: Mapped[dict | None] = mapped_column(JSON)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    cancellation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refund_amount: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)

    event: Mapped[Event] = relationship("Event")
    account: Mapped[Account] = relationship("Account")

    @property
    def is_active(self) -> bool:
        return holds_seat(self.status)
