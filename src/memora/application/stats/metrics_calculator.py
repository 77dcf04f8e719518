"""
Metrics calculator for deriving insights from review histories.

This is a pure computation module with no I/O.
"""

import logging
from collections.abc import Iterable, Iterator

from memora.domain.calendar import Date
from memora.domain.cards import Card
from memora.domain.fsrs import Outcome
from memora.domain.stats.models import CardStats, DayAccuracy, ReviewLogRow

logger = logging.getLogger(__name__)

# Key of the aggregate over every day in accuracy_by_day
TOTAL_KEY = -1

_EPOCH = Date.from_ymd(1970, 1, 1)
_MS_PER_HOUR = 60 * 60 * 1000
_SAME_DAY_STEP_MS = 10_000


class ReviewStatsCalculator:
    """
    Computes derived metrics from card review logs.

    Stateless and side-effect free.
    """

    def accuracy_by_day(self, cards: Iterable[Card], today: Date) -> dict[int, DayAccuracy]:
        """
        Share of correct first answers, keyed by days ago.

        Only the first answer a card got on a given day counts. Again is the only
        incorrect answer. ``TOTAL_KEY`` holds the sum over all days.
        """
        result: dict[int, DayAccuracy] = {TOTAL_KEY: DayAccuracy()}

        for card in cards:
            prev_day: int | None = None
            for item in card.state.review_log:
                if item.outcome is Outcome.BURY or item.day.day == prev_day:
                    continue
                prev_day = item.day.day

                correct = item.outcome is not Outcome.AGAIN
                for key in (TOTAL_KEY, today.day - item.day.day):
                    bucket = result.setdefault(key, DayAccuracy())
                    bucket.total += 1
                    bucket.correct += int(correct)

        return dict(sorted(result.items()))

    def review_log_rows(self, cards: Iterable[Card]) -> Iterator[ReviewLogRow]:
        """
        Review history of every card with a complete log.

        Only the day of each review is known, so the first review of a day is
        placed at noon and later ones 10 seconds apart.
        """
        for card_id, card in enumerate(cards):
            state = card.state
            if not state.review_log or not state.complete_history:
                continue

            previous_day: int | None = None
            timestamp = 0
            for item in state.review_log:
                if item.outcome is Outcome.BURY:
                    logger.warning(f"Skipping bury entry in review log of {card!r}")
                    continue
                if item.day.day != previous_day:
                    timestamp = ((item.day.day - _EPOCH.day) * 24 + 12) * _MS_PER_HOUR
                else:
                    timestamp += _SAME_DAY_STEP_MS
                previous_day = item.day.day
                yield ReviewLogRow(card_id=card_id, review_time=timestamp, rating=int(item.outcome))

    def enrich(self, card: Card, today: Date) -> CardStats:
        """
        Enrich a card's scheduling state with computed metrics.
        """
        state = card.state
        reviews = sum(1 for item in state.review_log if item.outcome.is_gradeable)
        lapses = sum(1 for item in state.review_log if item.outcome is Outcome.AGAIN)

        return CardStats(
            prefix=card.content.prefix,
            front=card.content.front,
            stability=state.stability,
            difficulty=state.difficulty,
            reviews=reviews,
            lapses=lapses,
            current_retention=None if state.first_review() else state.retention(today),
            lapse_rate=lapses / reviews if reviews else None,
            days_overdue=state.review_date.days_until(today),
        )
