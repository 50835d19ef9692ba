"""
Booking submission, tracking, history, cancellation and quote decisions.

``BookingDraft`` is the submission form's state machine:

    idle -> filling -> submitting -> succeeded
                 ^          |
                 +- failed <+

Field edits move the draft to ``filling``; ``submit`` validates the fields,
posts them to the ``bookings`` edge function and ends in ``succeeded`` (with
a booking id) or ``failed`` (with a message, ready to be edited and
resubmitted). Persistence is entirely the remote function's job.
"""
import enum
import random
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from hellofixo.clients.http import UpstreamError
from hellofixo.clients.supabase import SupabaseError, SupabaseGateway
from hellofixo.lib.config_flags import BookingConfig, get_booking_config
from hellofixo.lib.i18n import translate
from hellofixo.lib.logging import get_logger, log_with_context
from hellofixo.lib.metrics import get_metrics_collector
from hellofixo.models.bookings import (
    Booking,
    BookingStatus,
    RepairQuote,
    StatusHistoryEntry,
    TrackedStatus,
)
from hellofixo.models.catalog import Problem, ServiceCategory
from hellofixo.models.location import Location
from hellofixo.models.uploads import MediaFile
from hellofixo.models.users import CurrentUser, SavedAddress
from hellofixo.services.catalog_service import CatalogService, select_problems
from hellofixo.services.location_service import LocationService, ensure_serviceable
from hellofixo.services.pricing import PriceEstimate, estimate
from hellofixo.services.referral_service import ReferralResult, ReferralService
from hellofixo.services.wallet_service import WalletService

logger = get_logger(__name__)

IST = ZoneInfo("Asia/Kolkata")

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
MIN_ADDRESS_LENGTH = 5

BOOKING_HISTORY_COLUMNS = (
    "id,order_id,status,created_at,media_url,completion_code,final_amount_to_be_paid,"
    "categories(id,name),issues(id,title),repair_quotes(*)"
)

CANCEL_REASON_OTHER = "other"


class BookingState(str, enum.Enum):
    IDLE = "idle"
    FILLING = "filling"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    BookingState.IDLE: {BookingState.FILLING},
    BookingState.FILLING: {BookingState.FILLING, BookingState.SUBMITTING},
    BookingState.SUBMITTING: {BookingState.SUCCEEDED, BookingState.FAILED},
    BookingState.FAILED: {BookingState.FILLING, BookingState.SUBMITTING},
    BookingState.SUCCEEDED: set(),
}


class InvalidTransition(Exception):
    def __init__(self, current: BookingState, target: BookingState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking draft from {current.value} to {target.value}")


class BookingValidationError(ValueError):
    """Field-level validation failure; ``errors`` maps field name to messages."""

    def __init__(self, errors: Dict[str, List[str]], message: str = "Please fix the errors in the form"):
        self.errors = errors
        super().__init__(message)


class BookingNotFound(Exception):
    pass


class BookingConflict(Exception):
    """The booking or quote is not in a state that allows the requested change."""


def normalize_mobile(phone: Optional[str]) -> str:
    """Last ten digits of a phone number (drops +91 / 91 prefixes and punctuation)."""
    digits = re.sub(r"\D", "", phone or "")
    return digits[-10:]


def default_service_date(now: Optional[datetime] = None, config: Optional[BookingConfig] = None) -> date:
    """Today, or tomorrow once the evening cut-off hour has passed (IST)."""
    config = config or get_booking_config()
    now = now or datetime.now(IST)
    if now.hour >= config.next_day_cutoff_hour:
        return now.date() + timedelta(days=1)
    return now.date()


def format_status_date(moment: datetime) -> str:
    """``Jan 5, 2025 at 3:07 PM`` in IST."""
    local = moment.astimezone(IST) if moment.tzinfo else moment
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year} at {hour}:{local:%M} {local:%p}"


@dataclass
class BookingDraft:
    """All fields of the booking form plus its submission state."""
    category_id: Optional[str] = None
    problem_ids: List[str] = field(default_factory=list)
    pincode: Optional[str] = None
    user_id: Optional[str] = None
    user_name: str = ""
    mobile: str = ""
    address: str = ""
    landmark: str = ""
    time_slot: str = ""
    service_date: Optional[date] = None
    media: Optional[MediaFile] = None
    secondary_media: Optional[MediaFile] = None
    referral_code: Optional[str] = None
    discount: float = 0
    wallet_deduction: float = 0
    total_estimated_price: float = 0
    final_payable: float = 0

    state: BookingState = BookingState.IDLE
    booking_id: Optional[str] = None
    error: Optional[str] = None
    error_status: Optional[int] = None

    _EDITABLE = (
        "category_id", "problem_ids", "pincode", "user_id", "user_name", "mobile",
        "address", "landmark", "time_slot", "service_date", "media", "secondary_media",
        "referral_code", "discount", "wallet_deduction", "total_estimated_price", "final_payable",
    )

    def _move(self, target: BookingState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        self.state = target

    def update(self, **fields: Any) -> "BookingDraft":
        """Edit form fields. Clears a previous failure message."""
        unknown = set(fields) - set(self._EDITABLE)
        if unknown:
            raise AttributeError(f"Unknown booking fields: {', '.join(sorted(unknown))}")
        self._move(BookingState.FILLING)
        for name, value in fields.items():
            setattr(self, name, value)
        self.error = None
        self.error_status = None
        return self

    def validate(self, config: Optional[BookingConfig] = None) -> Dict[str, List[str]]:
        """Field errors of the current values (empty when valid)."""
        config = config or get_booking_config()
        errors: Dict[str, List[str]] = {}

        def add(name: str, message: str) -> None:
            errors.setdefault(name, []).append(message)

        if not self.category_id:
            add("category_id", "Category is required.")
        if not self.problem_ids:
            add("problem_ids", "Select at least one problem.")
        if not self.user_name.strip():
            add("user_name", "Name is required.")
        if not MOBILE_PATTERN.match(self.mobile.strip()):
            add("mobile", "Please enter a valid 10-digit mobile number.")
        if len(self.address.strip()) < MIN_ADDRESS_LENGTH:
            add("address", "Please enter a valid address.")
        if self.time_slot not in config.time_slots:
            add("time_slot", "Please select a time slot.")
        if self.media is None or self.media.is_empty:
            add("media", translate("photoRequired"))
        return errors

    def form_fields(self) -> Dict[str, str]:
        """Multipart text fields for the ``bookings`` function."""
        service_date = self.service_date or default_service_date()
        data = {
            "category_id": self.category_id or "",
            "issue_id": self.problem_ids[0] if self.problem_ids else "",
            "user_name": self.user_name.strip(),
            "mobile_number": self.mobile.strip(),
            "full_address": self.address.strip(),
            "landmark": self.landmark.strip(),
            "preferred_service_date": service_date.isoformat(),
            "preferred_time_slot": self.time_slot,
            "total_estimated_price": f"{self.total_estimated_price:g}",
            "final_amount_to_be_paid": f"{self.final_payable:g}",
        }
        if self.pincode:
            data["pincode"] = self.pincode
        if self.user_id:
            data["user_id"] = self.user_id
        if self.referral_code:
            data["referral_code"] = self.referral_code
        if self.wallet_deduction:
            data["wallet_amount_used"] = f"{self.wallet_deduction:g}"
        return data

    def form_files(self) -> Dict[str, tuple]:
        files = {}
        if self.media is not None:
            files["media"] = self.media.as_part()
        if self.secondary_media is not None:
            files["secondary_media"] = self.secondary_media.as_part()
        return files

    async def submit(self, gateway: SupabaseGateway) -> "BookingDraft":
        """
        Validate and send the booking.

        Raises:
            BookingValidationError: Fields are invalid; state is unchanged
            InvalidTransition: The draft was already submitted or never filled
        """
        if self.state not in (BookingState.FILLING, BookingState.FAILED):
            raise InvalidTransition(self.state, BookingState.SUBMITTING)

        errors = self.validate()
        if errors:
            raise BookingValidationError(errors)

        self._move(BookingState.SUBMITTING)
        metrics = get_metrics_collector()
        try:
            result = await gateway.invoke("bookings", data=self.form_fields(), files=self.form_files())
        except SupabaseError as e:
            log_with_context(logger, "warning", "Booking refused", status_code=e.status_code, reason=e.message)
            self._fail(e.message, e.status_code)
            metrics.increment_bookings("error")
            return self
        except UpstreamError as e:
            logger.error(f"Booking submission failed: {e}")
            self._fail(translate("unexpectedError"), None)
            metrics.increment_bookings("error")
            return self

        result = result if isinstance(result, dict) else {}
        self.booking_id = str(
            result.get("order_id")
            or result.get("bookingId")
            or f"SS-{random.randint(100000, 999999)}"
        )
        self._move(BookingState.SUCCEEDED)
        metrics.increment_bookings("success")
        log_with_context(
            logger, "info", f"Booking created: {self.booking_id}",
            category_id=self.category_id, pincode=self.pincode,
        )
        return self

    def _fail(self, message: str, status_code: Optional[int]) -> None:
        self._move(BookingState.FAILED)
        self.error = message
        self.error_status = status_code


class BookingRequest(BaseModel):
    """What the customer sends from the details page."""
    category_slug: str
    problem_ids: List[str]
    pincode: str
    user_name: str
    mobile: str
    address: str
    landmark: str = ""
    time_slot: str
    service_date: Optional[date] = None
    referral_code: Optional[str] = None
    use_wallet: bool = False


class BookingOutcome(BaseModel):
    state: BookingState
    booking_id: Optional[str] = None
    referral_code: Optional[str] = None
    error: Optional[str] = None
    error_status: Optional[int] = None
    estimate: Optional[PriceEstimate] = None
    referral: Optional[ReferralResult] = None


class BookingService:
    """
    Booking operations for an authenticated customer.

    Amounts are always recomputed here from the catalog, the location and a
    server-side referral check; figures sent by the browser are not trusted.
    """

    def __init__(
        self,
        gateway: SupabaseGateway,
        catalog: Optional[CatalogService] = None,
        locations: Optional[LocationService] = None,
        referrals: Optional[ReferralService] = None,
        wallet: Optional[WalletService] = None,
    ):
        self.gateway = gateway
        self.catalog = catalog or CatalogService(gateway)
        self.locations = locations
        self.referrals = referrals or ReferralService(gateway)
        self.wallet = wallet or WalletService(gateway)

    # ===== Submission =====

    async def quote_for(
        self,
        category: ServiceCategory,
        problems: List[Problem],
        location: Location,
        user: Optional[CurrentUser],
        referral_code: Optional[str] = None,
        mobile: Optional[str] = None,
        use_wallet: bool = False,
        lang: str = "en",
    ) -> tuple[PriceEstimate, Optional[ReferralResult]]:
        """Price a booking, verifying the referral code and reading the wallet when asked."""
        referral = None
        discount = 0.0
        if referral_code and referral_code.strip():
            referral = await self.referrals.verify(referral_code, mobile or (user.phone if user else None), lang)
            discount = referral.discount if referral.is_valid else 0.0

        balance = 0.0
        if use_wallet and user is not None:
            balance = await self.wallet.get_balance(user.id)

        price = estimate(
            category,
            location,
            problems,
            discount=discount,
            wallet_balance=balance,
            use_wallet=use_wallet,
        )
        return price, referral

    async def book(self, request: BookingRequest, media: Optional[MediaFile], user: CurrentUser,
                   secondary_media: Optional[MediaFile] = None, lang: str = "en") -> BookingOutcome:
        """
        Run the whole booking flow: category -> problems -> location gate -> price -> submit.

        Raises:
            BookingNotFound: Unknown category slug
            BookingNotAllowed: Location is not serviceable
            BookingValidationError: Invalid form fields or no known problem selected
        """
        category = await self.catalog.get_category(request.category_slug)
        if category is None:
            raise BookingNotFound(f"Category '{request.category_slug}' not found")

        problems = select_problems(category, request.problem_ids)

        if self.locations is None:
            raise RuntimeError("Location service not configured")
        resolved = await self.locations.resolve_pincode(request.pincode, lang)
        location = ensure_serviceable(resolved)

        price, referral = await self.quote_for(
            category, problems, location, user,
            referral_code=request.referral_code,
            mobile=request.mobile,
            use_wallet=request.use_wallet,
            lang=lang,
        )

        draft = BookingDraft().update(
            category_id=category.id,
            problem_ids=[p.id for p in problems],
            pincode=location.pincode,
            user_id=user.id,
            user_name=request.user_name,
            mobile=request.mobile,
            address=request.address,
            landmark=request.landmark,
            time_slot=request.time_slot,
            service_date=request.service_date or default_service_date(),
            media=media,
            secondary_media=secondary_media,
            referral_code=referral.code if referral and referral.is_valid else None,
            discount=price.discount,
            wallet_deduction=price.wallet_deduction,
            total_estimated_price=price.grand_total + price.repair_estimate_total,
            final_payable=price.final_payable,
        )
        try:
            await draft.submit(self.gateway)
        except BookingValidationError:
            get_metrics_collector().increment_bookings("invalid")
            raise

        return BookingOutcome(
            state=draft.state,
            booking_id=draft.booking_id,
            referral_code=draft.referral_code,
            error=draft.error,
            error_status=draft.error_status,
            estimate=price,
            referral=referral,
        )

    # ===== Tracking & history =====

    async def track(self, order_id: Optional[str], lang: str = "en") -> List[TrackedStatus]:
        """
        Status timeline of an order.

        Raises:
            BookingValidationError: Empty order id
            BookingNotFound: No history for the order
        """
        order_id = (order_id or "").strip()
        if not order_id:
            raise BookingValidationError({"order_id": [translate("orderIdRequired", lang)]},
                                         message=translate("orderIdRequired", lang))

        rows = await self.gateway.select(
            "booking_status_history",
            filters={"order_id": f"eq.{order_id}"},
            columns="order_id,status,note,created_at",
            order="created_at.asc",
        )
        if not rows:
            raise BookingNotFound(translate("bookingNotFound", lang))

        entries = [StatusHistoryEntry.model_validate(row) for row in rows]
        return [
            TrackedStatus(status=e.status, date=format_status_date(e.created_at), note=e.note)
            for e in entries
        ]

    async def history(self, user: CurrentUser) -> List[Booking]:
        """The customer's bookings, newest first."""
        mobile = normalize_mobile(user.phone)
        if not mobile:
            return []
        rows = await self.gateway.select(
            "booking",
            filters={"mobile_number": f"eq.{mobile}"},
            columns=BOOKING_HISTORY_COLUMNS,
            order="created_at.desc",
        )
        return [Booking.model_validate(row) for row in rows]

    async def _owned_booking(self, booking_id: str, user: CurrentUser) -> Booking:
        mobile = normalize_mobile(user.phone)
        row = None
        if mobile:
            row = await self.gateway.select_one(
                "booking",
                filters={"id": f"eq.{booking_id}", "mobile_number": f"eq.{mobile}"},
                columns=BOOKING_HISTORY_COLUMNS,
            )
        if row is None:
            raise BookingNotFound(f"Booking with id '{booking_id}' not found")
        return Booking.model_validate(row)

    # ===== Cancellation =====

    async def cancel(
        self,
        booking_id: str,
        user: CurrentUser,
        reason: Optional[str],
        other_reason: Optional[str] = None,
        lang: str = "en",
    ) -> None:
        """
        Cancel a booking on behalf of the customer.

        Raises:
            BookingValidationError: No reason, or "other" without text
            BookingNotFound: Booking doesn't exist or isn't the customer's
            BookingConflict: Work has started or the booking is already closed
            SupabaseError: The cancel function refused
        """
        reason = (reason or "").strip()
        if not reason:
            raise BookingValidationError({"reason": [translate("cancelReasonRequired", lang)]},
                                         message=translate("cancelReasonRequired", lang))
        final_reason = (other_reason or "").strip() if reason == CANCEL_REASON_OTHER else reason
        if not final_reason:
            raise BookingValidationError({"other_reason": [translate("cancelOtherReasonRequired", lang)]},
                                         message=translate("cancelOtherReasonRequired", lang))

        booking = await self._owned_booking(booking_id, user)
        if not booking.is_cancellable:
            raise BookingConflict(translate("bookingNotCancellable", lang))
        await self.gateway.invoke(
            "cancel-booking",
            json={"booking_id": booking_id, "cancelled_by": "customer", "reason": final_reason},
        )
        logger.info(f"Booking {booking_id} cancelled by customer")

    # ===== Quotes =====

    async def _decidable_quote(self, quote_id: str, user: CurrentUser) -> RepairQuote:
        """
        The customer's quote, provided it is the one their booking is waiting on.

        Raises:
            BookingNotFound: Quote or its booking doesn't exist or isn't the customer's
            BookingConflict: The booking is not awaiting a decision on this quote
        """
        row = await self.gateway.select_one("repair_quotes", filters={"id": f"eq.{quote_id}"})
        if row is None:
            raise BookingNotFound(f"Quote with id '{quote_id}' not found")
        quote = RepairQuote.model_validate(row)
        if quote.booking_id is None:
            raise BookingNotFound(f"Quote with id '{quote_id}' not found")
        booking = await self._owned_booking(quote.booking_id, user)
        pending = booking.pending_quote()
        if pending is None or pending.id != quote.id:
            raise BookingConflict(translate("quoteNotPending"))
        return quote

    async def accept_quote(self, quote_id: str, user: CurrentUser) -> Dict[str, Any]:
        """Approve a quote; the booking moves to ``quotation_approved``."""
        quote = await self._decidable_quote(quote_id, user)
        final_amount = quote.final_amount_to_be_paid
        if final_amount is None:
            final_amount = quote.total_amount

        await self.gateway.update("repair_quotes", {"id": f"eq.{quote.id}"}, {"status": "approved"})
        await self.gateway.update(
            "booking",
            {"id": f"eq.{quote.booking_id}"},
            {"status": BookingStatus.QUOTATION_APPROVED.value, "final_amount_to_be_paid": final_amount},
        )
        logger.info(f"Quote {quote.id} accepted", extra={"booking_id": quote.booking_id})
        return {
            "booking_id": quote.booking_id,
            "status": BookingStatus.QUOTATION_APPROVED.value,
            "final_amount_to_be_paid": final_amount,
        }

    async def reject_quote(self, quote_id: str, user: CurrentUser) -> Dict[str, Any]:
        """Reject a quote; the booking is cancelled."""
        quote = await self._decidable_quote(quote_id, user)
        await self.gateway.update("repair_quotes", {"id": f"eq.{quote.id}"}, {"status": "rejected"})
        await self.gateway.update(
            "booking",
            {"id": f"eq.{quote.booking_id}"},
            {"status": BookingStatus.CANCELLED.value},
        )
        logger.info(f"Quote {quote.id} rejected", extra={"booking_id": quote.booking_id})
        return {"booking_id": quote.booking_id, "status": BookingStatus.CANCELLED.value}

    # ===== Saved addresses =====

    async def saved_addresses(self, user: CurrentUser) -> List[SavedAddress]:
        rows = await self.gateway.select(
            "user_addresses",
            filters={"user_id": f"eq.{user.id}"},
            order="is_default.desc,created_at.desc",
        )
        return [SavedAddress.model_validate(row) for row in rows]

    async def save_address(self, user: CurrentUser, full_address: str, is_default: bool = False) -> SavedAddress:
        full_address = full_address.strip()
        if len(full_address) < MIN_ADDRESS_LENGTH:
            raise BookingValidationError({"full_address": ["Please enter a valid address."]})
        if is_default:
            await self.gateway.update("user_addresses", {"user_id": f"eq.{user.id}"}, {"is_default": False})
        row = await self.gateway.insert(
            "user_addresses",
            {"user_id": user.id, "full_address": full_address, "is_default": is_default},
        )
        return SavedAddress.model_validate(row)
