"""Season rates and their window validation."""

from staydesk.modules.season_rates.manager import SeasonRateManager
from staydesk.modules.season_rates.validator import RateWindow, RateWindowValidator, windows_overlap

__all__ = ["RateWindow", "RateWindowValidator", "SeasonRateManager", "windows_overlap"]
