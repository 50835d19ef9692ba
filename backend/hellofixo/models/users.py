"""
User records - authenticated caller, profile, saved addresses and wallet.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# Roles that belong to the partner/back-office apps, not the customer app
RESTRICTED_ROLES = {"technician", "admin"}


class CurrentUser(BaseModel):
    """Identity taken from a verified access token."""
    id: str
    phone: Optional[str] = None
    email: Optional[str] = None


class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @property
    def is_restricted(self) -> bool:
        return (self.role or "").lower() in RESTRICTED_ROLES


class SavedAddress(BaseModel):
    id: str
    full_address: str
    is_default: bool = False

    model_config = {"extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)


class WalletTransaction(BaseModel):
    """A wallet credit (referral reward, refund) or debit (used on a booking)."""
    type: Literal["credit", "debit"]
    source: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    amount: float = Field(ge=0)

    model_config = {"extra": "ignore"}

    @field_validator("type", mode="before")
    @classmethod
    def _lower(cls, value):
        return str(value).lower()


class WalletSummary(BaseModel):
    balance: float = 0
    referral_code: Optional[str] = None
    transactions: List[WalletTransaction] = Field(default_factory=list)
    recent_transaction: Optional[WalletTransaction] = None
