"""
Review simulation.

Plays a deck forward day by day, answering each card Good with a probability
equal to its estimated retention, to preview the upcoming workload.
"""

import copy
import logging
from dataclasses import dataclass

from memora.application.deck import Deck
from memora.domain.calendar import Date
from memora.domain.fsrs import Outcome
from memora.domain.rng import SplitMix64

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatedDay:
    offset: int
    date: Date
    cards: int  # cards due at the start of the day


def simulate_review(deck: Deck, start: Date, days: int, seed: int = 0) -> list[SimulatedDay]:
    """
    Simulate ``days`` days of reviews starting on ``start``.

    The deck passed in is left untouched.
    """
    deck = copy.deepcopy(deck)
    deck.stop_review()
    rng = SplitMix64.from_seed(seed)
    output: list[SimulatedDay] = []

    for offset in range(days):
        review_day = start.add_days(offset)
        deck.start_review(review_day, rng)
        output.append(SimulatedDay(offset=offset, date=review_day, cards=deck.active_review_count()))

        while (card := deck.get_review_card()) is not None:
            # Unreviewed cards have no stability yet and are always forgotten
            if card.state.stability > 0.0:
                retention = card.state.retention(review_day)
            else:
                retention = 0.0
            outcome = Outcome.GOOD if rng.next_float(0.0, 1.0) < retention else Outcome.AGAIN
            deck.review_card(outcome, rng)

    logger.debug(f"[simulate] {days} days from {start}, {sum(d.cards for d in output)} reviews due")
    return output
