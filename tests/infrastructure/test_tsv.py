import pytest

from memora.domain.calendar import Date
from memora.domain.cards import Card
from memora.domain.errors import DeckFormatError
from memora.domain.fsrs import Outcome, ReviewLogItem
from memora.infrastructure.tsv import (
    dump_tsv,
    escape,
    format_to_tsv,
    from_tsv,
    load_deck_from_tsv,
    unescape,
)

TODAY = Date.from_ymd(2024, 1, 1)


def _reviewed_card() -> Card:
    card = Card.new("test1\n\t\\n", "back\\t\ttab", "notes.md > Section", TODAY.add_days(-30))
    card.state.difficulty = 5.25
    card.state.stability = 12.5
    card.state.last_review = TODAY.add_days(-3)
    card.state.review_date = TODAY.add_days(9)
    card.state.review_log = [
        ReviewLogItem(Outcome.GOOD, TODAY.add_days(-30)),
        ReviewLogItem(Outcome.AGAIN, TODAY.add_days(-3)),
    ]
    return card


def test_escaping():
    assert escape("a\nb\tc") == "a\\nb\\tc"
    assert escape("literal \\n") == "literal [\\]n"
    for text in ["test1\n\t\\n", "\\t\t\\\\n", ""]:
        assert unescape(escape(text)) == text


def test_line_layout():
    fields = format_to_tsv(_reviewed_card(), TODAY).split("\t")
    assert fields[:9] == [
        "9",
        "5.25",
        "12.5",
        "notes.md > Section",
        "test1\\n\\t[\\]n",
        "back[\\]t\\ttab",
        "-30",
        "true",
        "-3",
    ]
    assert [ReviewLogItem.decode(int(v)).outcome for v in fields[9:]] == [
        Outcome.GOOD,
        Outcome.AGAIN,
    ]


def test_card_survives_export():
    card = _reviewed_card()
    # Dates are relative, so importing on another day shifts them all
    later = TODAY.add_days(5)
    line = format_to_tsv(card, TODAY)
    restored = from_tsv(line, TODAY)

    assert restored.content.front == card.content.front
    assert restored.content.back == card.content.back
    assert restored.content.prefix == card.content.prefix
    assert restored.state == card.state
    assert format_to_tsv(restored, TODAY) == line
    assert from_tsv(line, later).state.review_date == card.state.review_date.add_days(5)


def test_incomplete_history_flag():
    card = Card.new("q", "a", "File", TODAY)
    card.state.complete_history = False
    line = format_to_tsv(card, TODAY)
    assert line.split("\t")[7] == "false"
    assert from_tsv(line, TODAY).state.complete_history is False


def test_missing_field():
    with pytest.raises(DeckFormatError, match="Back"):
        from_tsv("0\t1.0\t2.0\tFile\tfront", TODAY)


@pytest.mark.parametrize(
    "line",
    [
        "x\t1.0\t2.0\tFile\tq\ta\t0\ttrue\t0",
        "0\t1.0\t2.0\tFile\tq\ta\t0\tmaybe\t0",
        "0\t1.0\t2.0\tFile\tq\ta\t0\ttrue\t0\t" + str(9 << 32),
    ],
)
def test_bad_values(line):
    with pytest.raises(DeckFormatError):
        from_tsv(line, TODAY)


def test_load_deck_from_tsv():
    cards = [_reviewed_card(), Card.new("q", "a", "File", TODAY)]
    text = dump_tsv(cards, TODAY).replace("\n", "\r\n") + "\r\n"

    deck = load_deck_from_tsv(text, TODAY)

    assert [c.content.front for c in deck.cards] == ["test1\n\t\\n", "q"]
    assert deck.orphans == []
    assert deck.base_cards == []
