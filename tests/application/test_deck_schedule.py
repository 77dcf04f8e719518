import time

import pytest

from memora.domain.calendar import Date
from memora.domain.rng import SplitMix64


def test_reschedule_spreads_cards(deck_factory):
    start = Date.from_ymd(2024, 1, 1)
    deck = deck_factory([(f"test{i}", "") for i in range(50)], start)

    placed = deck.reschedule(start, 2, 1)

    assert placed == 50
    assert deck.cards[0].state.review_date == start
    assert deck.cards[25].state.review_date == start.add_days(1)
    per_day = [sum(1 for c in deck.cards if c.state.review_date == start.add_days(i)) for i in range(2)]
    assert per_day == [25, 25]


def test_reschedule_respects_cap_and_moves_to_nearest_day(deck_factory):
    start = Date(1000)
    deck = deck_factory([(f"c{i}", "") for i in range(4)], start.add_days(2))

    deck.reschedule(start, 5, 2)

    days = sorted(c.state.review_date.day - start.day for c in deck.cards)
    # Two stay on day 2, then earliest offset first: day 1 before day 3
    assert days == [1, 1, 2, 2]


def test_reschedule_pulls_overdue_cards_into_window(deck_factory):
    start = Date(1000)
    deck = deck_factory([("late", "")], start.add_days(-10))
    deck.reschedule(start, 3, 5)
    assert deck.cards[0].state.review_date == start


def test_reschedule_with_zero_cap_places_every_card(deck_factory):
    start = Date(1000)
    deck = deck_factory([(f"c{i}", "") for i in range(10)], start)

    assert deck.reschedule(start, 3, 0) == 10

    for card in deck.cards:
        assert 0 <= card.state.review_date.day - start.day < 3


def test_reschedule_long_overdue_deck_is_fast(deck_factory):
    start = Date(1000)
    deck = deck_factory([(f"c{i}", "") for i in range(1000)], start.add_days(-365))

    began = time.perf_counter()
    placed = deck.reschedule(start, 7, 1)
    elapsed = time.perf_counter() - began

    assert placed == 1000
    assert elapsed < 2.0
    per_day = [0] * 7
    for card in deck.cards:
        offset = card.state.review_date.day - start.day
        assert 0 <= offset < 7
        per_day[offset] += 1
    assert max(per_day) <= 143
    assert sum(per_day) == 1000


def test_reschedule_ignores_cards_after_window_and_buried(deck_factory):
    start = Date(1000)
    deck = deck_factory([("later", ""), ("buried", "")], start.add_days(30))
    deck.cards[1].state.review_date = start
    deck.cards[1].state.buried = True

    assert deck.reschedule(start, 7, 1) == 0
    assert deck.cards[0].state.review_date == start.add_days(30)


def test_reschedule_rejects_empty_window(deck_factory):
    deck = deck_factory([("a", "")])
    with pytest.raises(ValueError):
        deck.reschedule(Date(0), 0, 1)


def test_random_reschedule_stays_within_fraction(deck_factory):
    start = Date(500)
    deck = deck_factory([(f"c{i}", "") for i in range(30)], start)
    for card in deck.cards:
        card.state.last_review = start
        card.state.review_date = start.add_days(20)

    deck.random_reschedule_fractional(0.1, SplitMix64(9))

    for card in deck.cards:
        assert 18 <= card.state.review_date.day - start.day <= 22


def test_random_reschedule_keeps_at_least_one_day(deck_factory):
    start = Date(500)
    deck = deck_factory([("new", "")], start)
    deck.random_reschedule_fractional(1.0, SplitMix64(1))
    assert deck.cards[0].state.review_date == start.add_days(1)


@pytest.mark.parametrize("fraction", [-0.1, 1.5])
def test_random_reschedule_rejects_bad_fraction(deck_factory, fraction):
    deck = deck_factory([("a", "")])
    with pytest.raises(ValueError):
        deck.random_reschedule_fractional(fraction, SplitMix64(0))
