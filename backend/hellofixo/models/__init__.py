"""
Record types exchanged with the hosted backend and returned by the API.
Every remote payload is validated into one of these before use.
"""
from hellofixo.models.catalog import Problem, ServiceCategory
from hellofixo.models.location import AreaInfo, Location, PostOffice, ServiceabilityResult
from hellofixo.models.bookings import (
    Booking,
    BookingStatus,
    RepairQuote,
    StatusHistoryEntry,
    TrackedStatus,
    normalize_status,
)
from hellofixo.models.users import (
    CurrentUser,
    SavedAddress,
    UserProfile,
    WalletSummary,
    WalletTransaction,
)
from hellofixo.models.uploads import MediaFile

__all__ = [
    "Problem",
    "ServiceCategory",
    "AreaInfo",
    "Location",
    "PostOffice",
    "ServiceabilityResult",
    "Booking",
    "BookingStatus",
    "RepairQuote",
    "StatusHistoryEntry",
    "TrackedStatus",
    "normalize_status",
    "CurrentUser",
    "SavedAddress",
    "UserProfile",
    "WalletSummary",
    "WalletTransaction",
    "MediaFile",
]
