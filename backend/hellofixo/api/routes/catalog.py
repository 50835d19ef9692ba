"""
Catalog API routes.

- GET  /categories                   - all categories
- GET  /categories/{slug}            - one category with the problems the picker shows
- POST /categories/{slug}/estimate   - upfront price for the picked problems at a location
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from hellofixo.api.dependencies import (
    get_booking_service,
    get_catalog_service,
    get_location_service,
    get_optional_user,
)
from hellofixo.api.middleware.error_handler import LocationDialogException, NotFoundException
from hellofixo.lib.request_context import get_language
from hellofixo.models.catalog import Problem, ServiceCategory
from hellofixo.models.location import Location, default_location
from hellofixo.models.users import CurrentUser
from hellofixo.services.booking_service import BookingService
from hellofixo.services.catalog_service import CatalogService, display_problems, select_problems
from hellofixo.services.location_service import BookingNotAllowed, LocationService, ensure_bookable, ensure_serviceable
from hellofixo.services.pricing import PriceEstimate
from hellofixo.services.referral_service import ReferralResult


# Pydantic schemas
class CategoryDetailResponse(BaseModel):
    category: ServiceCategory
    problems: List[Problem] = Field(..., description="Up to three problems followed by 'Other' if present")


class EstimateRequest(BaseModel):
    problem_ids: List[str] = Field(default_factory=list, description="Selected problem ids")
    pincode: Optional[str] = Field(None, description="Customer pincode; the default location is used when omitted")
    referral_code: Optional[str] = Field(None, description="Referral/coupon code to apply")
    mobile_number: Optional[str] = Field(None, description="Mobile number the code is checked against")
    use_wallet: bool = Field(False, description="Pay part of the total from the wallet (signed-in customers)")


class EstimateResponse(BaseModel):
    estimate: PriceEstimate
    location: Location
    referral: Optional[ReferralResult] = None


# Router
router = APIRouter(prefix="/categories", tags=["catalog"])


@router.get("", response_model=List[ServiceCategory])
async def list_categories(
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[ServiceCategory]:
    """List bookable categories in display order."""
    return await catalog.list_categories()


@router.get("/{slug}", response_model=CategoryDetailResponse)
async def get_category(
    slug: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> CategoryDetailResponse:
    """
    Get a category by slug.

    Raises:
        404: Unknown slug
    """
    category = await catalog.get_category(slug)
    if category is None:
        raise NotFoundException("Category", slug)
    return CategoryDetailResponse(category=category, problems=display_problems(category))


@router.post("/{slug}/estimate", response_model=EstimateResponse)
async def estimate_category(
    slug: str,
    body: EstimateRequest,
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service),
    locations: LocationService = Depends(get_location_service),
    bookings: BookingService = Depends(get_booking_service),
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> EstimateResponse:
    """
    Price the inspection visit for a category.

    Only the inspection fee and GST are payable upfront. Problem prices
    are returned as display ranges.

    Raises:
        404: Unknown slug
        409: Location is not serviceable (client shows the location dialog)
    """
    lang = get_language(request)
    category = await catalog.get_category(slug)
    if category is None:
        raise NotFoundException("Category", slug)

    try:
        if body.pincode:
            location = ensure_serviceable(await locations.resolve_pincode(body.pincode, lang))
        else:
            location = await locations.refresh(default_location())
            ensure_bookable(location)
    except BookingNotAllowed as e:
        raise LocationDialogException(e.reason, pincode=e.pincode, city=e.city)

    price, referral = await bookings.quote_for(
        category,
        select_problems(category, body.problem_ids),
        location,
        user,
        referral_code=body.referral_code,
        mobile=body.mobile_number,
        use_wallet=body.use_wallet,
        lang=lang,
    )
    return EstimateResponse(estimate=price, location=location, referral=referral)
