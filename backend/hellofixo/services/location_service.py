"""
Pincode resolution and serviceability.

Flow for a pincode:
1. Validate it is exactly six digits
2. Look it up on the India Post API and take the first post office's district
3. Check the district against the active rows of ``serviceable_cities``

Anything that goes wrong along the way marks the pincode as not
serviceable with a message; nothing here raises to the caller except
``BookingNotAllowed`` from ``ensure_bookable``.
"""
import re
from typing import Optional

from pydantic import ValidationError

from hellofixo.clients.http import UpstreamError
from hellofixo.clients.public_apis import GeocoderClient, PostalClient, post_offices
from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.i18n import translate
from hellofixo.lib.logging import get_logger
from hellofixo.lib.metrics import get_metrics_collector
from hellofixo.models.location import AreaInfo, Location, PostOffice, ServiceabilityResult

logger = get_logger(__name__)

PINCODE_PATTERN = re.compile(r"^\d{6}$")


class BookingNotAllowed(Exception):
    """The location is outside the serviceable area; the client should show the location dialog."""

    def __init__(self, pincode: str, city: Optional[str] = None, reason: Optional[str] = None):
        self.pincode = pincode
        self.city = city
        self.reason = reason or f"{city or pincode} is not serviceable"
        super().__init__(self.reason)


class LocationService:
    """Resolves pincodes and checks them against the serviceable-city list."""

    def __init__(
        self,
        gateway: SupabaseGateway,
        postal: PostalClient,
        geocoder: Optional[GeocoderClient] = None,
    ):
        self.gateway = gateway
        self.postal = postal
        self.geocoder = geocoder
        self.metrics = get_metrics_collector()

    async def _serviceable_city(self, city: str) -> Optional[dict]:
        return await self.gateway.select_one(
            "serviceable_cities",
            filters={"city_name": f"eq.{city}", "is_active": "eq.true"},
            columns="city_name,inspection_multiplier,repair_multiplier",
        )

    async def check_city(self, city: str) -> bool:
        """True when ``city`` is an active serviceable city. Lookup errors count as not serviceable."""
        if not city:
            return False
        try:
            return await self._serviceable_city(city) is not None
        except UpstreamError as e:
            logger.error(f"Serviceability check error for {city}: {e}")
            return False

    async def refresh(self, location: Location) -> Location:
        """Re-check a stored location and return a copy with an up-to-date ``is_serviceable``."""
        serviceable = await self.check_city(location.city)
        return location.model_copy(update={"is_serviceable": serviceable})

    async def resolve_pincode(self, pincode: str, lang: str = "en") -> ServiceabilityResult:
        """
        Resolve a pincode to its area and decide whether bookings are possible there.

        Args:
            pincode: Postal code as typed
            lang: Language for error messages

        Returns:
            ServiceabilityResult; ``location`` is set only when serviceable
        """
        pincode = (pincode or "").strip()
        if not PINCODE_PATTERN.match(pincode):
            return self._unserviceable(pincode, translate("errorInvalidPincode", lang))

        try:
            record = await self.postal.lookup(pincode)
        except UpstreamError as e:
            logger.error(f"Postal lookup failed for {pincode}: {e}")
            return self._unserviceable(pincode, translate("errorFailedToFetchLocation", lang), failed=True)

        if record is None:
            return self._unserviceable(pincode, translate("errorFailedToFetchLocation", lang), failed=True)

        if record.get("Status") != "Success":
            message = record.get("Message") or translate("errorCouldNotFindPincode", lang)
            return self._unserviceable(pincode, message)

        try:
            offices = [PostOffice.model_validate({**office, "Pincode": office.get("Pincode") or pincode})
                       for office in post_offices(record)]
        except ValidationError as e:
            logger.warning(f"Unexpected post office data for {pincode}: {e}")
            offices = []

        district = offices[0].District if offices else None
        if not district:
            return self._unserviceable(pincode, translate("errorNoDistrict", lang))

        try:
            city = await self._serviceable_city(district)
        except UpstreamError as e:
            logger.error(f"Serviceability check error for {district}: {e}")
            return self._unserviceable(pincode, translate("errorFailedToFetchLocation", lang),
                                       district=district, failed=True)

        area = AreaInfo(Name=offices[0].Name, District=district, State=offices[0].State)

        if city is None:
            self.metrics.increment_serviceability_checks("unserviceable")
            return ServiceabilityResult(
                pincode=pincode,
                is_serviceable=False,
                district=district,
                area=area,
                error=translate("errorNotServiceable", lang, district=district),
            )

        try:
            location = Location(
                pincode=pincode,
                city=district,
                area=area,
                inspection_multiplier=city.get("inspection_multiplier") or 1.0,
                repair_multiplier=city.get("repair_multiplier") or 1.0,
                is_serviceable=True,
            )
        except ValidationError as e:
            logger.error(f"Invalid serviceable_cities row for {district}: {e}")
            return self._unserviceable(pincode, translate("errorFailedToFetchLocation", lang),
                                       district=district, failed=True)

        self.metrics.increment_serviceability_checks("serviceable")
        return ServiceabilityResult(
            pincode=pincode,
            is_serviceable=True,
            district=district,
            area=area,
            post_offices=offices,
            location=location,
        )

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Human-readable address for GPS coordinates, or None when the geocoder has none.

        Raises:
            UpstreamError: If the geocoder cannot be reached
        """
        if self.geocoder is None:
            raise RuntimeError("Geocoder client not configured")
        data = await self.geocoder.reverse(latitude, longitude)
        if data and data.get("display_name"):
            return data["display_name"]
        return None

    def _unserviceable(
        self,
        pincode: str,
        message: str,
        district: Optional[str] = None,
        failed: bool = False,
    ) -> ServiceabilityResult:
        self.metrics.increment_serviceability_checks("failed" if failed else "unserviceable")
        return ServiceabilityResult(pincode=pincode, is_serviceable=False, district=district, error=message)


def ensure_bookable(location: Location) -> None:
    """
    Gate for the booking CTA.

    Raises:
        BookingNotAllowed: If the location is not serviceable
    """
    if not location.is_serviceable:
        raise BookingNotAllowed(location.pincode, location.city)


def ensure_serviceable(result: ServiceabilityResult) -> Location:
    """
    The bookable location of a pincode resolution.

    Raises:
        BookingNotAllowed: If the pincode did not resolve to a serviceable city
    """
    if not result.is_serviceable or result.location is None:
        raise BookingNotAllowed(result.pincode, result.district, result.error)
    ensure_bookable(result.location)
    return result.location
