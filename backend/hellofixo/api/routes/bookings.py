"""
Booking API routes.

- POST /bookings                       - submit a booking (multipart, with photos)
- GET  /bookings/history               - signed-in customer's bookings
- POST /bookings/track                 - status timeline for an order id
- POST /bookings/{booking_id}/cancel   - cancel a booking
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import BaseModel, Field

from hellofixo.api.dependencies import (
    get_booking_service,
    get_current_user,
    get_profile_service,
    read_upload,
)
from hellofixo.api.middleware.error_handler import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    LocationDialogException,
    NotFoundException,
    UpstreamServiceException,
    ValidationException,
)
from hellofixo.lib.i18n import translate
from hellofixo.lib.logging import get_logger
from hellofixo.lib.request_context import get_language
from hellofixo.models.bookings import Booking, TrackedStatus
from hellofixo.models.users import CurrentUser
from hellofixo.services.booking_service import (
    BookingConflict,
    BookingNotFound,
    BookingOutcome,
    BookingRequest,
    BookingService,
    BookingState,
    BookingValidationError,
)
from hellofixo.services.catalog_service import parse_problem_ids
from hellofixo.services.location_service import BookingNotAllowed
from hellofixo.services.profile_service import ProfileService

logger = get_logger(__name__)


# Pydantic schemas
class TrackRequest(BaseModel):
    order_id: str = Field("", description="Order id shown on the confirmation page")


class CancelRequest(BaseModel):
    reason: str = Field("", description="Selected reason, or 'other'")
    other_reason: Optional[str] = Field(None, description="Free text when reason is 'other'")


class CancelResponse(BaseModel):
    booking_id: str
    status: str = "cancelled"


# Router
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingOutcome, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: Request,
    category_slug: str = Form(..., description="Category slug"),
    problem_ids: str = Form(..., description="Comma-separated problem ids"),
    pincode: str = Form(..., description="Service pincode"),
    user_name: str = Form(""),
    mobile: str = Form(""),
    address: str = Form(""),
    landmark: str = Form(""),
    time_slot: str = Form(""),
    service_date: Optional[date] = Form(None),
    referral_code: Optional[str] = Form(None),
    use_wallet: bool = Form(False),
    media: Optional[UploadFile] = File(None, description="Photo of the issue (required)"),
    secondary_media: Optional[UploadFile] = File(None, description="Optional second photo"),
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
    profiles: ProfileService = Depends(get_profile_service),
) -> BookingOutcome:
    """
    Submit a booking.

    Prices are recomputed from the catalog, the pincode's city multipliers
    and a server-side referral check.

    Raises:
        403: Technician/admin accounts
        404: Unknown category
        409: Pincode not serviceable (client shows the location dialog)
        422: Invalid form fields, with per-field messages
        400: The booking function refused the booking
        502: The booking function could not be reached
    """
    lang = get_language(request)

    if await profiles.is_restricted(user.id):
        raise ForbiddenException("This account cannot book services from the customer app")

    booking_request = BookingRequest(
        category_slug=category_slug,
        problem_ids=parse_problem_ids(problem_ids),
        pincode=pincode,
        user_name=user_name,
        mobile=mobile,
        address=address,
        landmark=landmark,
        time_slot=time_slot,
        service_date=service_date,
        referral_code=referral_code,
        use_wallet=use_wallet,
    )

    try:
        outcome = await bookings.book(
            booking_request,
            await read_upload(media),
            user,
            secondary_media=await read_upload(secondary_media),
            lang=lang,
        )
    except BookingNotFound:
        raise NotFoundException("Category", category_slug)
    except BookingNotAllowed as e:
        raise LocationDialogException(e.reason, pincode=e.pincode, city=e.city)
    except BookingValidationError as e:
        raise ValidationException(translate("bookingError", lang), errors=e.errors)

    if outcome.state == BookingState.FAILED:
        if outcome.error_status is not None and outcome.error_status < 500:
            raise BadRequestException(outcome.error or translate("unexpectedError", lang))
        raise UpstreamServiceException("bookings", outcome.error or translate("unexpectedError", lang))

    return outcome


@router.get("/history", response_model=List[Booking])
async def booking_history(
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> List[Booking]:
    """Bookings made with the customer's mobile number, newest first."""
    return await bookings.history(user)


@router.post("/track", response_model=List[TrackedStatus])
async def track_booking(
    body: TrackRequest,
    request: Request,
    bookings: BookingService = Depends(get_booking_service),
) -> List[TrackedStatus]:
    """
    Status timeline for an order id.

    Raises:
        422: Empty order id
        404: No such order
    """
    lang = get_language(request)
    try:
        return await bookings.track(body.order_id, lang)
    except BookingValidationError as e:
        raise ValidationException(str(e), errors=e.errors)
    except BookingNotFound as e:
        raise NotFoundException("Booking", body.order_id, message=str(e))


@router.post("/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: str,
    body: CancelRequest,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> CancelResponse:
    """
    Cancel one of the customer's bookings.

    Raises:
        422: Missing reason
        404: Booking not found or not the customer's
        409: Work has started or the booking is already closed
    """
    lang = get_language(request)
    try:
        await bookings.cancel(booking_id, user, body.reason, body.other_reason, lang)
    except BookingValidationError as e:
        raise ValidationException(str(e), errors=e.errors)
    except BookingNotFound:
        raise NotFoundException("Booking", booking_id)
    except BookingConflict as e:
        raise ConflictException(str(e))
    return CancelResponse(booking_id=booking_id)
