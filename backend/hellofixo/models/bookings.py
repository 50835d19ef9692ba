"""
Booking records - orders, repair quotes and status history.

Status values are free text on the server. ``BookingStatus`` lists the
values the app knows how to present; anything else is passed through as-is.
"""
from datetime import datetime
from typing import List, Optional, Union
import enum

from pydantic import BaseModel, Field, field_validator


class BookingStatus(str, enum.Enum):
    """Known booking statuses."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ASSIGNED = "assigned"
    CODE_SENT = "code_sent"
    QUOTATION_SHARED = "quotation_shared"
    QUOTATION_APPROVED = "quotation_approved"
    REPAIR_COMPLETED = "repair_completed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def normalize_status(value: Optional[str]) -> Union[BookingStatus, str]:
    """
    Case-insensitive match against the known statuses.

    Returns the enum member, or the lowercased raw string for values this
    client does not know about.
    """
    key = (value or "").strip().lower()
    try:
        return BookingStatus(key)
    except ValueError:
        return key


# The customer can cancel only until the technician starts work
CANCELLABLE_STATUSES = {
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ASSIGNED,
}


class RepairQuote(BaseModel):
    """Technician's quotation after inspection."""
    id: str
    booking_id: Optional[str] = None
    labor_cost: float = 0
    parts_cost: float = 0
    total_amount: float = 0
    notes: Optional[str] = None
    status: str = "pending"
    final_amount_to_be_paid: Optional[float] = None

    model_config = {"extra": "ignore"}

    @field_validator("id", "booking_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return None if value is None else str(value)

    @property
    def is_pending(self) -> bool:
        return self.status.lower() == "pending"


class CategoryRef(BaseModel):
    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)


class IssueRef(BaseModel):
    id: str
    title: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)


class TechnicianRef(BaseModel):
    full_name: str


class Booking(BaseModel):
    """A customer's order as stored by the hosted backend."""
    id: str
    order_id: str
    status: str
    created_at: datetime
    media_url: Optional[str] = None
    completion_code: Optional[str] = None
    user_rating: Optional[int] = None
    final_amount_to_be_paid: Optional[float] = None
    final_amount_paid: Optional[float] = None
    net_inspection_fee: Optional[float] = None
    payment_method: Optional[str] = None
    referral_code: Optional[str] = None
    user_name: Optional[str] = None
    full_address: Optional[str] = None
    technician_id: Optional[str] = None
    categories: Optional[CategoryRef] = None
    issues: Optional[IssueRef] = None
    technicians: Optional[TechnicianRef] = None
    repair_quotes: List[RepairQuote] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @field_validator("repair_quotes", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return value or []

    @property
    def status_key(self) -> Union[BookingStatus, str]:
        return normalize_status(self.status)

    @property
    def is_cancellable(self) -> bool:
        return self.status_key in CANCELLABLE_STATUSES

    def pending_quote(self) -> Optional[RepairQuote]:
        """The quote awaiting the customer's decision, shown when status is quotation_shared."""
        if self.status_key != BookingStatus.QUOTATION_SHARED:
            return None
        return next((q for q in self.repair_quotes if q.is_pending), None)


class StatusHistoryEntry(BaseModel):
    """One row of a booking's status timeline."""
    status: str
    note: Optional[str] = None
    created_at: datetime

    model_config = {"extra": "ignore"}


class TrackedStatus(BaseModel):
    """History entry formatted for display."""
    status: str
    date: str
    note: Optional[str] = None
