"""
Location API routes.

- GET /location/pincode/{pincode} - resolve a pincode and check serviceability
- GET /location/reverse           - address for GPS coordinates
- GET /location/default           - the default location, re-checked
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from hellofixo.api.dependencies import get_location_service
from hellofixo.api.middleware.error_handler import UpstreamServiceException
from hellofixo.clients.http import UpstreamError
from hellofixo.lib.request_context import get_language
from hellofixo.models.location import Location, ServiceabilityResult, default_location
from hellofixo.services.location_service import LocationService


class ReverseGeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    address: Optional[str] = None


router = APIRouter(prefix="/location", tags=["location"])


@router.get("/pincode/{pincode}", response_model=ServiceabilityResult)
async def resolve_pincode(
    pincode: str,
    request: Request,
    locations: LocationService = Depends(get_location_service),
) -> ServiceabilityResult:
    """
    Resolve a pincode to its area and serviceability.

    Always answers 200; an unserviceable or unknown pincode carries an
    ``error`` message for the customer.
    """
    return await locations.resolve_pincode(pincode, get_language(request))


@router.get("/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    locations: LocationService = Depends(get_location_service),
) -> ReverseGeocodeResponse:
    """Address for the customer's GPS position (``address`` is null when none is known)."""
    try:
        address = await locations.reverse_geocode(lat, lon)
    except UpstreamError as e:
        raise UpstreamServiceException(e.service)
    return ReverseGeocodeResponse(latitude=lat, longitude=lon, address=address)


@router.get("/default", response_model=Location)
async def get_default_location(
    locations: LocationService = Depends(get_location_service),
) -> Location:
    """The location used before the customer picks one, with current serviceability."""
    return await locations.refresh(default_location())
