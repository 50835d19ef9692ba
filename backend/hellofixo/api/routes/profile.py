"""
Profile API routes.

- GET   /profile            - signed-in customer's profile
- PATCH /profile            - update name / email
- GET   /profile/addresses  - saved addresses
- POST  /profile/addresses  - save an address
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from hellofixo.api.dependencies import get_booking_service, get_current_user, get_profile_service
from hellofixo.api.middleware.error_handler import NotFoundException, ValidationException
from hellofixo.models.users import CurrentUser, SavedAddress, UserProfile
from hellofixo.services.booking_service import BookingService, BookingValidationError
from hellofixo.services.profile_service import ProfileService


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, description="Display name")
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Contact email")


class SaveAddressRequest(BaseModel):
    full_address: str = Field(..., description="Address as typed or picked from GPS")
    is_default: bool = Field(False, description="Make this the default address")


router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserProfile)
async def get_profile(
    user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfile:
    profile = await profiles.get_profile(user.id)
    if profile is None:
        raise NotFoundException("Profile", user.id)
    return profile


@router.patch("", response_model=UserProfile)
async def update_profile(
    body: ProfileUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserProfile:
    profile = await profiles.update_profile(user.id, full_name=body.full_name, email=body.email)
    if profile is None:
        raise NotFoundException("Profile", user.id)
    return profile


@router.get("/addresses", response_model=List[SavedAddress])
async def list_addresses(
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> List[SavedAddress]:
    """Saved addresses, default first."""
    return await bookings.saved_addresses(user)


@router.post("/addresses", response_model=SavedAddress, status_code=status.HTTP_201_CREATED)
async def save_address(
    body: SaveAddressRequest,
    user: CurrentUser = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
) -> SavedAddress:
    try:
        return await bookings.save_address(user, body.full_address, body.is_default)
    except BookingValidationError as e:
        raise ValidationException(str(e), errors=e.errors)
