"""
Cards, collections and cloze derivation.

A card's identity is its ``(prefix, front)`` pair; cards sort by ``front``.
Derived (cloze) cards point at their root through ``base``, an index into the
owning collection's ``base_cards``.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from .calendar import Date
from .cloze import ClozeSequence, ClozeStyle, detect_style, render_plain
from .constants import (
    CLOZE_CONTEXT_ELLIPSIS,
    CLOZE_PLACEHOLDER,
    DEFAULT_SURROUNDING_LINES,
    LINE_CARD_TYPE,
)
from .errors import UnsupportedCardType
from .fsrs import MemoryState

logger = logging.getLogger(__name__)

MULTILINE_FENCE = ":::"
INLINE_SEPARATOR = ":: "


class Editability(Enum):
    EDITABLE = "editable"
    BASE_EDITABLE = "base_editable"  # edits go to the base card
    NOT_EDITABLE = "not_editable"


@dataclass(frozen=True)
class CardMetadata:
    """Per-root options selecting a special derivation mode."""

    card_type: str
    surrounding_lines: int = DEFAULT_SURROUNDING_LINES


@dataclass
class CardContent:
    prefix: str = ""
    front: str = ""
    back: str = ""
    editable: bool = True
    base: int | None = None
    child_index: int | None = None
    metadata: CardMetadata | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.prefix, self.front)

    def editability(self) -> Editability:
        if self.editable:
            return Editability.EDITABLE
        if self.base is not None:
            return Editability.BASE_EDITABLE
        return Editability.NOT_EDITABLE

    @property
    def md_filename(self) -> str:
        """Source file name: the prefix up to the first ``>``."""
        return self.prefix.split(">", 1)[0].rstrip()

    @property
    def singleline_front(self) -> str:
        return self.front.replace("\n", "\\n")

    def to_markdown(self) -> str:
        if "\n" in self.front:
            return f"{MULTILINE_FENCE}\n{self.front}{MULTILINE_FENCE}\n{self.back}{MULTILINE_FENCE}"
        return f"{self.front}{INLINE_SEPARATOR}{self.back}"


@dataclass(eq=False)
class Card:
    content: CardContent
    state: MemoryState

    @classmethod
    def new(cls, front: str = "", back: str = "", prefix: str = "", date: Date | None = None) -> "Card":
        return cls(
            content=CardContent(prefix=prefix, front=front, back=back),
            state=MemoryState.new(date if date is not None else Date(1)),
        )

    @property
    def key(self) -> tuple[str, str]:
        return self.content.key

    def contains(self, word: str) -> bool:
        c = self.content
        return word in c.front or word in c.back or word in c.prefix

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __lt__(self, other: "Card") -> bool:
        return self.content.front < other.content.front

    def __repr__(self) -> str:
        return f"Card(prefix={self.content.prefix!r}, front={self.content.front!r})"


def _derived_card(root: Card, front: str, back: str, base: int, child_index: int) -> Card:
    return Card(
        content=CardContent(
            prefix=root.content.prefix,
            front=front,
            back=back,
            editable=False,
            base=base,
            child_index=child_index,
        ),
        state=MemoryState.new(root.state.date_added),
    )


@dataclass
class Collection:
    """
    Cards produced from one ingestion pass.

    Attributes:
        base_cards: Roots that were expanded into derived cards.
        cards: Every reviewable card: roots without cloze spans plus derived cards.
    """

    base_cards: list[Card] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)

    @classmethod
    def from_cards(cls, cards: list[Card]) -> "Collection":
        collection = cls()
        for card in cards:
            collection.add(card)
        logger.debug(
            f"[collection] {len(cards)} roots -> {len(collection.cards)} cards, "
            f"{len(collection.base_cards)} base cards"
        )
        return collection

    def add(self, card: Card) -> None:
        metadata = card.content.metadata
        if metadata is not None:
            if metadata.card_type != LINE_CARD_TYPE:
                raise UnsupportedCardType(
                    f"unsupported card type {metadata.card_type!r} for {card!r}"
                )
            self._add_line_cards(card, metadata.surrounding_lines)
            return

        style = detect_style(card.content.back)
        if style is None or ClozeSequence(card.content.back, style).first() is None:
            self.cards.append(card)
            return
        self._add_cloze_cards(card, style)

    def _add_cloze_cards(self, root: Card, style: ClozeStyle) -> None:
        base = len(self.base_cards)
        for index, span in enumerate(ClozeSequence(root.content.back, style)):
            front = (
                root.content.front
                + "\n\n"
                + render_plain(span.before, style)
                + CLOZE_PLACEHOLDER
                + render_plain(span.after, style)
            )
            self.cards.append(_derived_card(root, front, span.clozed, base, index))
        self.base_cards.append(root)

    def _add_line_cards(self, root: Card, surrounding_lines: int) -> None:
        base = len(self.base_cards)
        spans = list(ClozeSequence(root.content.back, ClozeStyle.LINES, surrounding_lines))
        if not spans:
            self.cards.append(root)
            return
        last = len(spans) - 1
        for index, span in enumerate(spans):
            front = ""
            if index - surrounding_lines > 0:
                front += CLOZE_CONTEXT_ELLIPSIS + "\n"
            front += span.before + CLOZE_PLACEHOLDER + span.after
            if index + surrounding_lines < last:
                front += "\n" + CLOZE_CONTEXT_ELLIPSIS
            back = "{{{" + span.clozed + "}}}"
            self.cards.append(_derived_card(root, front, back, base, index))
        self.base_cards.append(root)

    def derived_from(self, base: int) -> list[Card]:
        return [c for c in self.cards if c.content.base == base]


def with_trailing_newlines(card: Card) -> Card:
    """Multi-line cards end both sides with a newline so they round-trip as ``:::`` blocks."""
    content = card.content
    if "\n" not in content.front and "\n" not in content.back:
        return card
    front = content.front if content.front.endswith("\n") else content.front + "\n"
    back = content.back if content.back.endswith("\n") else content.back + "\n"
    return Card(content=replace(content, front=front, back=back), state=card.state)
