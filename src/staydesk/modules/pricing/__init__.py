"""Dynamic nightly pricing."""

from staydesk.modules.pricing.engine import DailyPrice, PriceBreakdown, PricingEngine

__all__ = ["DailyPrice", "PriceBreakdown", "PricingEngine"]
