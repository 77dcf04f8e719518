"""
Domain models for review statistics.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass


@dataclass
class DayAccuracy:
    """
    Answers counted for one day.

    Attributes:
        correct: First answers of the day that were not Again.
        total: First answers of the day.
    """

    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float | None:
        if self.total == 0:
            return None
        return self.correct / self.total


@dataclass(frozen=True)
class ReviewLogRow:
    """
    One exported review, in the column layout FSRS optimizers expect.

    Attributes:
        card_id: Position of the card in the deck.
        review_time: Epoch milliseconds (noon of the review day, +10s per extra review).
        rating: 1=Again, 2=Hard, 3=Good, 4=Easy.
    """

    card_id: int
    review_time: int
    rating: int

    def to_csv(self) -> str:
        return f"{self.card_id},{self.review_time},{self.rating},,"


@dataclass
class CardStats:
    """Card scheduling data enriched with computed metrics."""

    prefix: str
    front: str
    stability: float
    difficulty: float
    reviews: int
    lapses: int

    current_retention: float | None  # None for cards never reviewed
    lapse_rate: float | None  # lapses / reviews
    days_overdue: int  # Negative if not yet due
