"""
The deck: long-lived card store, review sessions, rescheduling and reconciliation.

Review session lifecycle:
    idle --start_*_review--> in session --(active set empties | stop_review)--> idle

Only ``cards``, ``orphans``, ``base_cards``, ``params``, ``track_review_history``
and ``parsing_version`` are persistent; everything else is session state.
"""

import logging
import math
from dataclasses import dataclass, field, replace

from memora.domain.calendar import Date
from memora.domain.cards import Card, Collection, Editability, with_trailing_newlines
from memora.domain.constants import LOAD_BALANCE_MIN_STABILITY, PARSING_VERSION
from memora.domain.errors import ContractViolation, NotEditableError, SessionError
from memora.domain.fsrs import FsrsParams, Outcome, ReviewResult
from memora.domain.fsrs.formulas import round_half_away
from memora.domain.rng import SplitMix64

logger = logging.getLogger(__name__)


def indices_to_review(cards: list[Card], date: Date) -> list[int]:
    """Indices of non-buried cards due on or before ``date``."""
    return [
        i
        for i, card in enumerate(cards)
        if date.is_after(card.state.review_date) and not card.state.buried
    ]


@dataclass
class Deck:
    cards: list[Card] = field(default_factory=list)
    orphans: list[Card] = field(default_factory=list)
    base_cards: list[Card] = field(default_factory=list)
    params: FsrsParams = field(default_factory=FsrsParams)
    track_review_history: bool = False
    parsing_version: int = PARSING_VERSION

    # Session state, never persisted
    review_indices: list[int] = field(default_factory=list, repr=False)
    review_index: int | None = field(default=None, repr=False)
    review_date: Date | None = field(default=None, repr=False)
    edited_cards: list[tuple[Card, Card]] = field(default_factory=list, repr=False)

    # ------------------------------------------------------------------
    # Review sessions
    # ------------------------------------------------------------------

    def start_review(self, date: Date, rng: SplitMix64) -> None:
        """Start a session over the cards due on or before ``date``."""
        self.review_indices = indices_to_review(self.cards, date)
        self._begin(date, rng)

    def start_all_review(self, date: Date, rng: SplitMix64) -> None:
        """Start a session over every non-buried card."""
        self.review_indices = [i for i, c in enumerate(self.cards) if not c.state.buried]
        self._begin(date, rng)

    def start_random_review(self, date: Date, rng: SplitMix64, count: int) -> None:
        """Start a session over ``count`` distinct non-buried cards drawn at random."""
        available = sum(1 for c in self.cards if not c.state.buried)
        count = min(count, len(self.cards), available)
        chosen: list[int] = []
        seen: set[int] = set()
        while len(chosen) < count:
            index = rng.next_below(len(self.cards))
            if index in seen or self.cards[index].state.buried:
                continue
            seen.add(index)
            chosen.append(index)
        self.review_indices = chosen
        self._begin(date, rng)

    def _begin(self, date: Date, rng: SplitMix64) -> None:
        self.review_index = None
        self.review_date = date
        self._next_review_index(rng)
        logger.debug(f"[session] started on {date} with {len(self.review_indices)} cards")

    def stop_review(self) -> None:
        self.review_indices = []
        self.review_index = None
        self.review_date = None

    @property
    def in_session(self) -> bool:
        return self.review_index is not None

    def _next_review_index(self, rng: SplitMix64) -> None:
        count = len(self.review_indices)
        if count == 0:
            self.review_index = None
            return
        if count == 1:
            self.review_index = 0
            return

        previous = self.review_index
        new_index = rng.next_below(count)
        while new_index == previous:
            new_index = rng.next_below(count)
        self.review_index = new_index

    def current_card_index(self) -> int | None:
        """Deck index of the card under review, or None when idle."""
        if self.review_index is None:
            return None
        return self.review_indices[self.review_index]

    def get_review_card(self) -> Card | None:
        index = self.current_card_index()
        return None if index is None else self.cards[index]

    def active_review_count(self) -> int:
        return len(self.review_indices)

    def cards_to_review_count(self, date: Date) -> int:
        return len(indices_to_review(self.cards, date))

    def review_card(self, outcome: Outcome, rng: SplitMix64) -> ReviewResult:
        """Answer the current card and move on to another one."""
        if self.review_index is None or self.review_date is None:
            raise SessionError("no card is under review")

        position = self.review_index
        card_index = self.review_indices[position]
        card = self.cards[card_index]
        result = card.state.review_with_rng(
            outcome, self.review_date, self.track_review_history, rng, self.params
        )

        if result is ReviewResult.DISCARD:
            if card.state.stability > LOAD_BALANCE_MIN_STABILITY and not card.state.buried:
                offset = self.card_review_offset(card.state.review_date)
                if offset:
                    card.state.review_date = card.state.review_date.add_days(offset)
            del self.review_indices[position]

        self._next_review_index(rng)
        return result

    def card_review_offset(self, day: Date) -> int:
        """
        Day shift that flattens a local peak of due cards around ``day``.

        Returns -1 when ``day`` is busier than the day before and the day after
        is not quieter than the day before, +1 when ``day`` and the day before
        are both busier than the day after, 0 otherwise.
        """
        yesterday = today = tomorrow = 0
        for card in self.cards:
            delta = card.state.review_date.day - day.day
            if delta == 0:
                today += 1
            elif delta == -1:
                yesterday += 1
            elif delta == 1:
                tomorrow += 1

        if today > yesterday and tomorrow >= yesterday:
            return -1
        if today > tomorrow and yesterday > tomorrow:
            return 1
        return 0

    # ------------------------------------------------------------------
    # Batch rescheduling
    # ------------------------------------------------------------------

    def reschedule(self, first_day: Date, days: int, max_cards_per_day: int) -> int:
        """
        Spread the cards due before ``first_day + days`` over that window.

        Each card moves to the nearest day (earliest offset first) that still
        has capacity. The cap is raised to the minimum that fits every card.

        Returns:
            The number of cards placed.
        """
        if days <= 0:
            raise ValueError(f"window must span at least one day, got {days}")

        pending = [
            i
            for i, card in enumerate(self.cards)
            if not card.state.buried and card.state.review_date.day - first_day.day < days
        ]
        total = len(pending)
        needed = math.ceil(total / days)
        if max_cards_per_day < needed:
            logger.info(
                f"[reschedule] raising max cards per day from {max_cards_per_day} to {needed}"
            )
            max_cards_per_day = needed

        counts = [0] * days
        radius = 0
        while pending:
            unplaced: list[int] = []
            for index in pending:
                state = self.cards[index].state
                relative = state.review_date.day - first_day.day
                # Only offsets landing inside the window can place the card
                lowest = max(-radius, -relative)
                highest = min(radius, days - 1 - relative)
                for offset in range(lowest, highest + 1):
                    slot = relative + offset
                    if counts[slot] < max_cards_per_day:
                        state.review_date = state.review_date.add_days(offset)
                        counts[slot] += 1
                        break
                else:
                    unplaced.append(index)
            pending = unplaced
            radius += 1
            if pending:
                # Radii below the nearest remaining card's distance to the window place nothing
                nearest = min(
                    first_day.day - self.cards[i].state.review_date.day for i in pending
                )
                radius = max(radius, nearest)

        logger.info(f"[reschedule] placed {total} cards over {days} days")
        return total

    def random_reschedule_fractional(self, fraction: float, rng: SplitMix64) -> None:
        """Stretch every interval by a random factor in ``[1 - fraction, 1 + fraction]``."""
        if not 0.0 <= fraction <= 1.0:
            raise ValueError(f"fraction should be between 0 and 1, got {fraction}")

        for card in self.cards:
            state = card.state
            if state.buried:
                continue
            factor = rng.next_float(1.0 - fraction, 1.0 + fraction)
            interval = (state.review_date.day - state.last_review.day) * factor
            days = max(1, round_half_away(interval))
            state.review_date = state.last_review.add_days(days)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def replace_cards(self, collection: Collection) -> None:
        """
        Merge a freshly parsed collection into the deck, keeping review history.

        Cards are matched by ``(prefix, front)``; unmatched old cards become
        orphans, and new identities reclaim an orphan with the same front.
        """
        incoming: dict[tuple[str, str], Card] = {}
        duplicates = 0
        for card in collection.cards:
            existing = incoming.get(card.key)
            if existing is not None:
                existing.content.editable = False
                duplicates += 1
            else:
                incoming[card.key] = card

        updated: list[Card] = []
        orphaned = 0
        for card in self.cards:
            new_card = incoming.pop(card.key, None)
            if new_card is not None:
                card.content = new_card.content
                updated.append(card)
            else:
                card.content.base = None
                self.orphans.append(card)
                orphaned += 1
                logger.debug(f"[reconcile] orphaned {card!r}")

        relinked = 0
        for card in incoming.values():
            for i, orphan in enumerate(self.orphans):
                if orphan.content.front == card.content.front:
                    card.state = self.orphans.pop(i).state
                    relinked += 1
                    logger.debug(f"[reconcile] relinked {card!r}")
                    break
            updated.append(card)

        updated.sort()
        self.cards = updated
        self.base_cards = list(collection.base_cards)
        self.stop_review()
        self.check_handles()

        logger.info(
            f"[reconcile] {len(self.cards)} cards, {len(incoming) - relinked} new, "
            f"{relinked} relinked, {orphaned} orphaned, {duplicates} duplicates"
        )

    def check_handles(self) -> None:
        """Fail if any card points at a base card that does not exist."""
        for card in self.cards:
            base = card.content.base
            if base is not None and not 0 <= base < len(self.base_cards):
                raise ContractViolation(f"{card!r} points at missing base card {base}")

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def edit_base_card(self, base_index: int, new_card: Card) -> None:
        """
        Replace a base card and update its derived cards in place.

        Derived cards are matched by ``child_index`` so their history survives;
        new spans are appended. Children whose span disappeared are left as they are.
        """
        if not 0 <= base_index < len(self.base_cards):
            raise ContractViolation(f"no base card at index {base_index}")

        new_card = with_trailing_newlines(new_card)
        derived = Collection.from_cards([new_card]).derived_from(0)

        self.edited_cards.append((self.base_cards[base_index], new_card))
        self.base_cards[base_index] = new_card

        for child in derived:
            child.content.base = base_index
            for card in self.cards:
                if (
                    card.content.base == base_index
                    and card.content.child_index == child.content.child_index
                ):
                    card.content = child.content
                    break
            else:
                self.cards.append(child)

    def edit_card(self, card_index: int, front: str, back: str) -> None:
        """Edit an editable card in place and queue the change for write-back."""
        card = self.cards[card_index]
        if card.content.editability() is not Editability.EDITABLE:
            raise NotEditableError(f"{card!r} cannot be edited directly")

        old = Card(content=replace(card.content), state=card.state)
        edited = with_trailing_newlines(
            Card(content=replace(card.content, front=front, back=back), state=card.state)
        )
        card.content = edited.content
        self.edited_cards.append((old, card))

    def base_card_for(self, card_index: int) -> Card:
        card = self.cards[card_index]
        if card.content.base is None:
            raise NotEditableError(f"{card!r} has no base card")
        return self.base_cards[card.content.base]

    def drain_edited_cards(self) -> list[tuple[Card, Card]]:
        edited, self.edited_cards = self.edited_cards, []
        return edited

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_cards(self, query: str) -> list[int]:
        """Indices of cards containing every whitespace-separated word of ``query``."""
        words = query.split()
        return [i for i, card in enumerate(self.cards) if all(card.contains(w) for w in words)]

    def delete_orphans(self) -> int:
        count = len(self.orphans)
        self.orphans = []
        return count
