"""
Location records - customer pincode, resolved area and pricing multipliers.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hellofixo.lib.settings import settings


class AreaInfo(BaseModel):
    """Post office area as returned by the postal API (its field names kept)."""
    Name: str
    District: str
    State: str

    model_config = ConfigDict(extra="ignore")


class PostOffice(AreaInfo):
    Pincode: Optional[str] = None


class Location(BaseModel):
    """
    The customer's service location.

    Multipliers scale the category inspection fee and problem repair fees
    for the city; they default to 1.0.
    """
    pincode: str = Field(..., pattern=r"^\d{6}$")
    city: str
    area: Optional[AreaInfo] = None
    inspection_multiplier: float = Field(default=1.0, gt=0)
    repair_multiplier: float = Field(default=1.0, gt=0)
    is_serviceable: bool = False


class ServiceabilityResult(BaseModel):
    """Outcome of resolving a pincode."""
    pincode: str
    is_serviceable: bool
    district: Optional[str] = None
    area: Optional[AreaInfo] = None
    post_offices: List[PostOffice] = Field(default_factory=list)
    location: Optional[Location] = None
    error: Optional[str] = None


def default_location() -> Location:
    """Location used before the customer picks one; serviceability is re-checked on use."""
    return Location(
        pincode=settings.default_pincode,
        city=settings.default_city,
        area=AreaInfo(
            Name=settings.default_area_name,
            District=settings.default_city,
            State=settings.default_state,
        ),
        is_serviceable=True,
    )
