# Domain Package
from .calendar import Date
from .cards import Card, CardContent, CardMetadata, Collection, Editability
from .cloze import ClozeSequence, ClozeSpan, ClozeStyle
from .fsrs import FsrsParams, MemoryState, Outcome, ReviewLogItem, ReviewResult
from .rng import SplitMix64

__all__ = [
    "Date",
    "SplitMix64",
    "Card",
    "CardContent",
    "CardMetadata",
    "Collection",
    "Editability",
    "ClozeSequence",
    "ClozeSpan",
    "ClozeStyle",
    "FsrsParams",
    "MemoryState",
    "Outcome",
    "ReviewLogItem",
    "ReviewResult",
]
