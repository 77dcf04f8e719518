"""
Value types of the FSRS memory model.

Outcomes, review results, review-log entries and the global parameters.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum

from pydantic import BaseModel, Field, field_validator

from ..calendar import Date
from ..constants import FSRS_DEFAULT_RETENTION, FSRS_DEFAULT_WEIGHTS, FSRS_WEIGHT_COUNT
from ..errors import ContractViolation, DeckFormatError


class Outcome(IntEnum):
    """
    Answer given for a card. The value is the review-log code.

    BURY is a pseudo-outcome: it hides the card and never reaches the formulas.
    """

    BURY = 0
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @property
    def is_gradeable(self) -> bool:
        return self is not Outcome.BURY

    @property
    def grade(self) -> int:
        """Numeric grade 1..4 used by the formulas."""
        if self is Outcome.BURY:
            raise ContractViolation("bury has no grade")
        return int(self)


GRADEABLE_OUTCOMES = (Outcome.AGAIN, Outcome.HARD, Outcome.GOOD, Outcome.EASY)


class ReviewResult(Enum):
    AGAIN = "again"  # keep the card in the active session
    DISCARD = "discard"  # remove the card from the active session


@dataclass(frozen=True)
class ReviewLogItem:
    """
    A single answer recorded in a card's history.

    Serialized as one signed 64-bit integer: outcome code in the high 32 bits,
    day number (as unsigned 32 bit) in the low 32 bits.
    """

    outcome: Outcome
    day: Date

    def encode(self) -> int:
        return (int(self.outcome) << 32) | (self.day.day & 0xFFFFFFFF)

    @classmethod
    def decode(cls, value: int) -> "ReviewLogItem":
        code = value >> 32
        try:
            outcome = Outcome(code)
        except ValueError as e:
            raise DeckFormatError(f"unknown outcome code {code} in review log entry {value}") from e
        day = value & 0xFFFFFFFF
        if day >= 1 << 31:
            day -= 1 << 32
        return cls(outcome=outcome, day=Date(day))


class FsrsParams(BaseModel):
    """
    Global model parameters shared by every card.

    Attributes:
        w: The 17 FSRS weights.
        target_retention: Recall probability the scheduler aims for, in (0, 1).
    """

    w: list[float] = Field(default_factory=lambda: list(FSRS_DEFAULT_WEIGHTS))
    target_retention: float = Field(default=FSRS_DEFAULT_RETENTION, gt=0.0, lt=1.0)

    @field_validator("w")
    @classmethod
    def check_weight_count(cls, v: list[float]) -> list[float]:
        if len(v) != FSRS_WEIGHT_COUNT:
            raise ValueError(f"expected {FSRS_WEIGHT_COUNT} weights, got {len(v)}")
        return v
