"""
Tab-separated export and import of cards.

One card per line, dates relative to a reference day::

    days_to_review  difficulty  stability  prefix  front  back  date_added  complete_history  last_review  [log...]

Newlines and tabs inside front and back are escaped; the buried flag is not exported.
"""

from collections.abc import Iterable

from memora.application.deck import Deck
from memora.domain.calendar import Date
from memora.domain.cards import Card, CardContent
from memora.domain.errors import DateOverflowError, DeckFormatError
from memora.domain.fsrs import MemoryState, ReviewLogItem

TSV_HEADERS = (
    "Days to review",
    "Difficulty",
    "Stability",
    "Prefix",
    "Front",
    "Back",
    "Date added",
    "Complete review history",
    "Last review",
)

# Applied in order when escaping, in reverse order when unescaping
ESCAPED_STRINGS = (
    ("\\n", "[\\]n"),
    ("\\t", "[\\]t"),
    ("\n", "\\n"),
    ("\t", "\\t"),
)

_FIXED_FIELDS = len(TSV_HEADERS)


def escape(text: str) -> str:
    for original, escaped in ESCAPED_STRINGS:
        text = text.replace(original, escaped)
    return text


def unescape(text: str) -> str:
    for original, escaped in reversed(ESCAPED_STRINGS):
        text = text.replace(escaped, original)
    return text


def format_to_tsv(card: Card, today: Date) -> str:
    state = card.state
    fields = [
        str(today.days_until(state.review_date)),
        repr(state.difficulty),
        repr(state.stability),
        card.content.prefix,
        escape(card.content.front),
        escape(card.content.back),
        str(today.days_until(state.date_added)),
        "true" if state.complete_history else "false",
        str(today.days_until(state.last_review)),
    ]
    fields.extend(str(item.encode()) for item in state.review_log)
    return "\t".join(fields)


def _parse_bool(value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected true or false, got {value!r}")


def from_tsv(line: str, today: Date) -> Card:
    """
    Parse one exported line back into a card.

    Raises:
        DeckFormatError: When a field is missing or malformed.
    """
    fields = line.split("\t")
    # A trailing tab leaves an empty last field
    if fields and fields[-1] == "":
        fields.pop()
    if len(fields) < _FIXED_FIELDS:
        missing = TSV_HEADERS[len(fields)]
        raise DeckFormatError(f"missing field {missing!r} in line {line!r}")

    try:
        state = MemoryState(
            date_added=today.add_days(int(fields[6])),
            last_review=today.add_days(int(fields[8])),
            review_date=today.add_days(int(fields[0])),
            difficulty=float(fields[1]),
            stability=float(fields[2]),
            complete_history=_parse_bool(fields[7]),
            review_log=[ReviewLogItem.decode(int(v)) for v in fields[_FIXED_FIELDS:]],
        )
    except (ValueError, DateOverflowError) as e:
        raise DeckFormatError(f"bad value in line {line!r}: {e}") from e

    content = CardContent(prefix=fields[3], front=unescape(fields[4]), back=unescape(fields[5]))
    return Card(content=content, state=state)


def dump_tsv(cards: Iterable[Card], today: Date) -> str:
    return "".join(format_to_tsv(card, today) + "\n" for card in cards)


def load_deck_from_tsv(text: str, today: Date) -> Deck:
    deck = Deck()
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line:
            deck.cards.append(from_tsv(line, today))
    return deck
