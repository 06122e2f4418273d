"""Room availability: conflict checks and manual date overrides."""

from staydesk.modules.availability.checker import AvailabilityChecker, AvailabilityResult
from staydesk.modules.availability.overrides import OverrideItem, OverrideManager

__all__ = ["AvailabilityChecker", "AvailabilityResult", "OverrideItem", "OverrideManager"]
