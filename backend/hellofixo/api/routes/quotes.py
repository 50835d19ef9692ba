"""
Repair quote API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hellofixo.api.dependencies import get_booking_service, get_current_user
from hellofixo.api.middleware.error_handler import ConflictException, NotFoundException
from hellofixo.models.users import CurrentUser
from hellofixo.services.booking_service import BookingConflict, BookingNotFound, BookingService


class QuoteDecisionResponse(BaseModel):
    booking_id: str
    status: str
    final_amount_to_be_paid: Optional[float] = None


router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/{quote_id}/accept", response_model=QuoteDecisionResponse)
async def accept_quote(
    quote_id: str,
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> QuoteDecisionResponse:
    """Approve a technician's quote; the booking moves to ``quotation_approved``."""
    try:
        result = await bookings.accept_quote(quote_id, user)
    except BookingNotFound:
        raise NotFoundException("Quote", quote_id)
    except BookingConflict as e:
        raise ConflictException(str(e))
    return QuoteDecisionResponse(**result)


@router.post("/{quote_id}/reject", response_model=QuoteDecisionResponse)
async def reject_quote(
    quote_id: str,
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> QuoteDecisionResponse:
    """Reject a technician's quote; the booking is cancelled."""
    try:
        result = await bookings.reject_quote(quote_id, user)
    except BookingNotFound:
        raise NotFoundException("Quote", quote_id)
    except BookingConflict as e:
        raise ConflictException(str(e))
    return QuoteDecisionResponse(**result)
