from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from .core.lifecycle import RegStatus
from .models import (
    AccountRole,
    Difficulty,
    EventCategory,
    EventStatus,
    PaymentMethod,
    PaymentStatus,
)

Str255   = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
OptStr255 = Annotated[str | None, Field(max_length=255)]
Password = Annotated[str, Field(min_length=6, max_length=128)]


def _to_utc(v: datetime | None) -> datetime | None:
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]


# -------- Accounts --------
class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None


class SignUpRequest(BaseModel):
    name: Str255
    email: EmailStr
    password: Password
    phone: OptStr255 = None
    address: Address | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    name: Str255 | None = None
    phone: OptStr255 = None
    address: Address | None = None


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: Password


class AccountStatusUpdate(BaseModel):
    is_active: bool


class AccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None
    address: dict | None = None
    role: AccountRole
    is_active: bool
    created_at: datetime | None = None


class AccountBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None


# -------- Events --------
class Image(BaseModel):
    url: str
    alt: str | None = None


class Organizer(BaseModel):
    name: str | None = None
    contact: str | None = None
    email: str | None = None


class Coordinates(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class EventCreate(BaseModel):
    title: Str255
    description: str = Field(min_length=1)
    category: EventCategory = EventCategory.OTHER
    date: UtcDatetime
    location: Str255
    coordinates: Coordinates | None = None
    images: list[Image] = Field(default_factory=list)
    max_participants: int = Field(ge=1)
    price: float = Field(ge=0)
    duration_hours: float = Field(ge=0.5)
    difficulty: Difficulty = Difficulty.MODERATE
    requirements: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    organizer: Organizer | None = None


class EventUpdate(BaseModel):
    title: Str255 | None = None
    description: str | None = Field(default=None, min_length=1)
    category: EventCategory | None = None
    date: UtcDatetime | None = None
    location: Str255 | None = None
    coordinates: Coordinates | None = None
    images: list[Image] | None = None
    max_participants: int | None = Field(default=None, ge=1)
    price: float | None = Field(default=None, ge=0)
    duration_hours: float | None = Field(default=None, ge=0.5)
    difficulty: Difficulty | None = None
    requirements: list[str] | None = None
    highlights: list[str] | None = None
    organizer: Organizer | None = None
    status: EventStatus | None = None
    is_active: bool | None = None


class ProgressUpdate(BaseModel):
    progress: float = Field(ge=0, le=100)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    date: datetime
    location: str
    category: EventCategory
    images: list[dict]
    max_participants: int
    current_participants: int
    price: float
    duration_hours: float
    difficulty: Difficulty
    status: EventStatus
    progress: float


class EventRead(EventSummary):
    description: str
    latitude: float | None = None
    longitude: float | None = None
    requirements: list[str]
    highlights: list[str]
    organizer: dict
    created_by: UUID
    is_active: bool
    is_full: bool
    is_upcoming: bool
    available_spots: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EventCapacity(BaseModel):
    id: UUID
    title: str
    current_participants: int
    max_participants: int


# -------- Registrations --------
class EmergencyContact(BaseModel):
    name: str | None = None
    phone: str | None = None
    relationship: str | None = None


class RegistrationCreate(BaseModel):
    special_requirements: str | None = Field(default=None, max_length=2000)
    emergency_contact: EmergencyContact | None = None
    payment_method: PaymentMethod = PaymentMethod.OTHER


class RegistrationCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class RegistrationAdminUpdate(BaseModel):
    status: RegStatus | None = None
    notes: str | None = Field(default=None, max_length=4000)
    payment_status: PaymentStatus | None = None
    refund_amount: float | None = Field(default=None, ge=0)


class RegistrationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    event_id: UUID
    status: RegStatus
    registration_date: datetime
    payment_status: PaymentStatus
    payment_amount: float
    payment_method: PaymentMethod
    special_requirements: str | None = None
    emergency_contact: dict | None = None
    cancellation_reason: str | None = None
    cancellation_date: datetime | None = None
    refund_amount: float | None = None
    notes: str | None = None


class RegistrationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: RegStatus
    payment_status: PaymentStatus
    registration_date: datetime


class RegistrationWithEvent(RegistrationRead):
    event: EventSummary | None = None


class RegistrationWithAccount(RegistrationRead):
    account: AccountBrief | None = None


# -------- Paging --------
class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=(total + limit - 1) // limit if limit else 0,
            total_items=total,
            items_per_page=limit,
        )
