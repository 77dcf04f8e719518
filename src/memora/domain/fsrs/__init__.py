# Domain FSRS Package
from .memory import MemoryState
from .models import GRADEABLE_OUTCOMES, FsrsParams, Outcome, ReviewLogItem, ReviewResult

__all__ = [
    "MemoryState",
    "FsrsParams",
    "Outcome",
    "GRADEABLE_OUTCOMES",
    "ReviewLogItem",
    "ReviewResult",
]
