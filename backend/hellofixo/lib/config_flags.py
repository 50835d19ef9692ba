"""
Business configuration for pricing and booking.

Provides centralized configuration for:
- Pricing (GST rate, default inspection fee, estimate spread)
- Booking (time slots, cut-off hour after which the default date is tomorrow)
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from hellofixo.lib.logging import get_logger
from hellofixo.lib.settings import settings


logger = get_logger(__name__)


class PricingConfig(BaseModel):
    """
    Pricing knobs for the visiting-fee model.

    Only the inspection fee (plus GST) is charged upfront; repair cost is
    quoted after the technician's visit.
    """

    gst_rate: float = Field(
        default_factory=lambda: settings.gst_rate,
        ge=0,
        le=1,
        description="GST rate applied to the inspection fee"
    )
    default_inspection_fee: float = Field(
        default_factory=lambda: settings.default_inspection_fee,
        ge=0,
        description="Inspection fee for categories that don't define one"
    )
    estimate_spread: float = Field(
        default_factory=lambda: settings.estimate_spread,
        ge=0,
        description="Displayed range is estimated_price ± spread"
    )


class BookingConfig(BaseModel):
    """Booking form options."""

    time_slots: List[str] = Field(
        default=["9 AM-12 PM", "12 PM-2 PM", "2 PM-5 PM"],
        min_length=1,
        description="Selectable visit windows"
    )
    next_day_cutoff_hour: int = Field(
        default=18,
        ge=0,
        le=23,
        description="From this hour on, the default visit date is tomorrow"
    )


_pricing_config: Optional[PricingConfig] = None
_booking_config: Optional[BookingConfig] = None


def get_pricing_config() -> PricingConfig:
    """Get pricing configuration, creating the default on first use."""
    global _pricing_config
    if _pricing_config is None:
        _pricing_config = PricingConfig()
        logger.info("Initialized default pricing configuration")
    return _pricing_config


def set_pricing_config(config: PricingConfig) -> None:
    """Override pricing configuration."""
    global _pricing_config
    _pricing_config = config
    logger.info("Updated pricing configuration", extra={
        "gst_rate": config.gst_rate,
        "default_inspection_fee": config.default_inspection_fee,
    })


def get_booking_config() -> BookingConfig:
    """Get booking configuration."""
    global _booking_config
    if _booking_config is None:
        _booking_config = BookingConfig()
        logger.info("Initialized default booking configuration")
    return _booking_config


def set_booking_config(config: BookingConfig) -> None:
    """Override booking configuration."""
    global _booking_config
    _booking_config = config
    logger.info("Updated booking configuration")


def reset_all_configs() -> None:
    """Reset all configurations to defaults (useful for testing)."""
    global _pricing_config, _booking_config
    _pricing_config = None
    _booking_config = None
    logger.info("Reset all configurations to defaults")
