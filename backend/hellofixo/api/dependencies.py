"""
API dependencies for FastAPI dependency injection.

Provides the shared remote clients (created once in the app lifespan and
kept on ``app.state``), the service objects built on them, and
authentication of the calling customer.
"""
from typing import Optional
from fastapi import Depends, HTTPException, Request, UploadFile, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt.exceptions import InvalidTokenError

from hellofixo.clients.public_apis import GeocoderClient, PostalClient
from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.jwt import get_user_from_token
from hellofixo.lib.logging import get_logger
from hellofixo.models.uploads import MediaFile
from hellofixo.models.users import CurrentUser
from hellofixo.services.booking_service import BookingService
from hellofixo.services.catalog_service import CatalogService
from hellofixo.services.location_service import LocationService
from hellofixo.services.partner_service import PartnerService
from hellofixo.services.profile_service import ProfileService
from hellofixo.services.referral_service import ReferralService
from hellofixo.services.wallet_service import WalletService

logger = get_logger(__name__)


# HTTP Bearer token security scheme
security = HTTPBearer()


# ===== Remote clients =====

def get_gateway(request: Request) -> SupabaseGateway:
    return request.app.state.gateway


def get_postal(request: Request) -> PostalClient:
    return request.app.state.postal


def get_geocoder(request: Request) -> GeocoderClient:
    return request.app.state.geocoder


# ===== Services =====

def get_catalog_service(gateway: SupabaseGateway = Depends(get_gateway)) -> CatalogService:
    return CatalogService(gateway)


def get_location_service(
    gateway: SupabaseGateway = Depends(get_gateway),
    postal: PostalClient = Depends(get_postal),
    geocoder: GeocoderClient = Depends(get_geocoder),
) -> LocationService:
    return LocationService(gateway, postal, geocoder)


def get_referral_service(gateway: SupabaseGateway = Depends(get_gateway)) -> ReferralService:
    return ReferralService(gateway)


def get_wallet_service(gateway: SupabaseGateway = Depends(get_gateway)) -> WalletService:
    return WalletService(gateway)


def get_profile_service(gateway: SupabaseGateway = Depends(get_gateway)) -> ProfileService:
    return ProfileService(gateway)


def get_partner_service(gateway: SupabaseGateway = Depends(get_gateway)) -> PartnerService:
    return PartnerService(gateway)


def get_booking_service(
    gateway: SupabaseGateway = Depends(get_gateway),
    catalog: CatalogService = Depends(get_catalog_service),
    locations: LocationService = Depends(get_location_service),
    referrals: ReferralService = Depends(get_referral_service),
    wallet: WalletService = Depends(get_wallet_service),
) -> BookingService:
    return BookingService(gateway, catalog, locations, referrals, wallet)


# ===== Authentication =====

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Dependency to get the current authenticated customer from the access token.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Authenticated user identity

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        user_id, phone, email = get_user_from_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(id=user_id, phone=phone, email=email)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
) -> Optional[CurrentUser]:
    """
    Dependency to get current user if authenticated, None otherwise.

    Useful for endpoints that work with or without authentication
    (guests can browse, estimate and book).
    """
    if not credentials:
        return None

    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None


# ===== Uploads =====

async def read_upload(upload: Optional[UploadFile]) -> Optional[MediaFile]:
    """Buffer a multipart upload so it can be forwarded; an absent file is None."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return MediaFile(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )
