# Application Stats Package
from .metrics_calculator import TOTAL_KEY, ReviewStatsCalculator

__all__ = ["ReviewStatsCalculator", "TOTAL_KEY"]
