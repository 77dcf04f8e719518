from memora.application.simulation import simulate_review
from memora.domain.calendar import Date


def test_simulation_does_not_touch_the_deck(deck_factory):
    start = Date(1000)
    deck = deck_factory([(f"c{i}", "") for i in range(10)], start)

    result = simulate_review(deck, start, 30)

    assert len(result) == 30
    assert result[0].cards == 10
    assert [day.offset for day in result] == list(range(30))
    assert all(c.state.first_review() for c in deck.cards)
    assert all(c.state.review_date == start for c in deck.cards)


def test_simulation_is_deterministic(deck_factory):
    start = Date(1000)
    deck = deck_factory([(f"c{i}", "") for i in range(20)], start)

    first = [d.cards for d in simulate_review(deck, start, 60, seed=4)]
    second = [d.cards for d in simulate_review(deck, start, 60, seed=4)]

    assert first == second
    assert first[0] == 20


def test_simulation_of_empty_deck(deck_factory):
    result = simulate_review(deck_factory([]), Date(0), 3)
    assert [d.cards for d in result] == [0, 0, 0]
