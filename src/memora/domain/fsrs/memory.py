"""
Per-card memory state and its review state machine.

A card is *unreviewed* until its first answer is recorded (``first_review()``),
then *reviewed* forever. Burying is orthogonal to both.
"""

import copy
from dataclasses import dataclass, field

from ..calendar import Date
from ..constants import JITTER
from ..rng import SplitMix64
from .formulas import (
    initial_difficulty,
    initial_stability,
    new_difficulty,
    new_stability_correct,
    new_stability_incorrect,
    next_interval,
    power_forgetting_curve,
    round_half_away,
)
from .models import FsrsParams, Outcome, ReviewLogItem, ReviewResult


@dataclass
class MemoryState:
    """
    FSRS memory state for a card.

    Attributes:
        date_added: Day the card first appeared.
        last_review: Day of the latest answer.
        review_date: Day the card is next due. Never before ``last_review``.
        difficulty: In [1, 10] once reviewed.
        stability: Days until recall probability drops to 90%; > 0 once reviewed.
        buried: Excluded from sessions and rescheduling.
        complete_history: False once any answer was recorded without history tracking.
        review_log: Answers in the order they were given.
    """

    date_added: Date
    last_review: Date
    review_date: Date
    difficulty: float = 0.0
    stability: float = 0.0
    buried: bool = False
    complete_history: bool = True
    review_log: list[ReviewLogItem] = field(default_factory=list)

    @classmethod
    def new(cls, date: Date) -> "MemoryState":
        return cls(date_added=date, last_review=date, review_date=date)

    def first_review(self) -> bool:
        return self.complete_history and not self.review_log

    def retention(self, date: Date) -> float:
        """Estimated recall probability on ``date`` (elapsed time floored at one day)."""
        t = max(float(date.day - self.last_review.day), 1.0)
        return power_forgetting_curve(t, self.stability)

    def interval(self, params: FsrsParams) -> float:
        return next_interval(self.stability, params.target_retention)

    def _schedule_success(self, date: Date, fraction: float, params: FsrsParams) -> None:
        days = round_half_away(self.interval(params) * fraction)
        self.last_review = date
        self.review_date = date.add_days(days)

    def _schedule_failure(self, date: Date) -> None:
        self.last_review = date
        self.review_date = date

    def _initial_review(
        self, outcome: Outcome, date: Date, fraction: float, params: FsrsParams
    ) -> ReviewResult:
        self.stability = initial_stability(outcome, params)
        self.difficulty = initial_difficulty(outcome, params)
        if outcome is Outcome.AGAIN:
            self._schedule_failure(date)
            return ReviewResult.AGAIN
        self._schedule_success(date, fraction, params)
        return ReviewResult.DISCARD

    def review(
        self,
        outcome: Outcome,
        date: Date,
        track_history: bool,
        fraction: float,
        params: FsrsParams,
    ) -> ReviewResult:
        """
        Apply one answer.

        Args:
            outcome: The answer. BURY only sets ``buried``.
            date: Day of the review.
            track_history: Append to ``review_log``; otherwise mark the history incomplete.
            fraction: Multiplicative jitter applied to the next interval.
            params: Global model parameters.

        Returns:
            ReviewResult.AGAIN if the card should be shown again in this session.
        """
        if outcome is Outcome.BURY:
            self.buried = True
            return ReviewResult.DISCARD

        first_review = self.first_review()

        if track_history:
            self.review_log.append(ReviewLogItem(outcome=outcome, day=date))
        else:
            self.complete_history = False

        if first_review:
            return self._initial_review(outcome, date, fraction, params)

        retention = self.retention(date)
        if outcome is Outcome.AGAIN:
            self.stability = new_stability_incorrect(
                self.difficulty, self.stability, retention, params
            )
            self.difficulty = new_difficulty(self.difficulty, outcome.grade, params)
            self._schedule_failure(date)
            return ReviewResult.AGAIN

        self.stability = new_stability_correct(
            self.difficulty, self.stability, retention, outcome, params
        )
        self.difficulty = new_difficulty(self.difficulty, outcome.grade, params)
        self._schedule_success(date, fraction, params)
        return ReviewResult.DISCARD

    def review_with_rng(
        self,
        outcome: Outcome,
        date: Date,
        track_history: bool,
        rng: SplitMix64,
        params: FsrsParams,
    ) -> ReviewResult:
        fraction = rng.next_float(1.0 - JITTER, 1.0 + JITTER)
        return self.review(outcome, date, track_history, fraction, params)

    def next_interval(
        self, outcome: Outcome, date: Date, rng: SplitMix64, params: FsrsParams
    ) -> int:
        """Days until the next review if ``outcome`` were answered on ``date``.

        Neither this state nor ``rng`` is modified.
        """
        preview = copy.deepcopy(self)
        preview.review_with_rng(outcome, date, False, rng.copy(), params)
        return preview.review_date.day - date.day
