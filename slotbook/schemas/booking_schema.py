"""Booking, actor and booking-history data models."""

from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from slotbook.schemas.base_schema import DocumentModel, UtcDatetime

MAX_REASON_LENGTH = 300


class BookingStatus(str, Enum):
    """Externally visible booking status."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Role(str, Enum):
    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"


class CancellationKind(str, Enum):
    """Internal annotation of a cancelled booking."""
    STANDALONE = "standalone"
    SUPERSEDED = "superseded"


class Actor(BaseModel):
    """Authenticated caller as handed over by the identity collaborator."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role


class Booking(DocumentModel):
    """A persisted booking. ``endAt`` is always derived from start and duration."""

    model_config = ConfigDict(frozen=True)

    id: str
    request_id: str
    response_id: str
    provider_user_id: str
    client_id: str
    start_at: UtcDatetime
    duration_min: int = Field(ge=1)
    status: BookingStatus = BookingStatus.CONFIRMED

    cancelled_at: Optional[UtcDatetime] = None
    cancelled_by: Optional[Role] = None
    cancel_reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)

    rescheduled_from_id: Optional[str] = None
    rescheduled_to_id: Optional[str] = None
    rescheduled_at: Optional[UtcDatetime] = None
    reschedule_reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)

    metadata: dict[str, Any] = Field(default_factory=dict)

    @computed_field(alias="endAt")  # type: ignore[prop-decorator]
    @property
    def end_at(self) -> UtcDatetime:
        return self.start_at + timedelta(minutes=self.duration_min)

    @property
    def cancellation_kind(self) -> Optional[CancellationKind]:
        """Superseded when cancelled by a reschedule, standalone otherwise."""
        if self.status != BookingStatus.CANCELLED:
            return None
        if self.rescheduled_to_id:
            return CancellationKind.SUPERSEDED
        return CancellationKind.STANDALONE


class BookingFilters(BaseModel):
    """Optional list filters on ``startAt`` plus paging."""

    status: Optional[BookingStatus] = None
    from_: Optional[UtcDatetime] = Field(default=None, alias="from")
    to: Optional[UtcDatetime] = None
    limit: Optional[int] = None
    offset: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True)


class BookingHistory(DocumentModel):
    """A reschedule chain ordered oldest -> newest."""

    root_id: str
    requested_id: str
    latest_id: str
    current_index: int
    items: list[Booking]
