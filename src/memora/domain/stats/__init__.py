# Domain Stats Package
from .models import CardStats, DayAccuracy, ReviewLogRow

__all__ = ["DayAccuracy", "ReviewLogRow", "CardStats"]
