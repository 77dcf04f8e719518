"""
Markdown card syntax.

Cards are written either inline::

    front:: back

or as a multi-line block::

    :::
    front lines
    :::
    back lines
    :::

Headings build the card prefix (``notes.md > Chapter > Section``). A comment
``<!-- memora: {card_type: line, surrounding_lines: 1} -->`` attaches
metadata to the card that follows it.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import yaml

from memora.domain.calendar import Date
from memora.domain.cards import INLINE_SEPARATOR, MULTILINE_FENCE, Card, CardContent, CardMetadata
from memora.domain.constants import DEFAULT_SURROUNDING_LINES
from memora.domain.fsrs import MemoryState

logger = logging.getLogger(__name__)

DEFAULT_HEADING = "File"

_HEADING_RE = re.compile(r"(#+)(\s.*)")
_METADATA_RE = re.compile(r"\s*<!--\s*memora:\s*(.*?)\s*-->\s*")


@dataclass(frozen=True)
class Heading:
    title: str
    level: int


class _Block(Enum):
    NONE = 0
    FRONT = 1
    BACK = 2


@dataclass(frozen=True)
class _LocatedCard:
    content: CardContent
    start: int
    end: int


def check_markdown_heading(line: str) -> Heading | None:
    """``## Title`` -> Heading("Title", 2). Hashes must start the line and be followed by whitespace."""
    m = _HEADING_RE.fullmatch(line)
    if not m:
        return None
    title = m.group(2).strip()
    if not title:
        return None
    return Heading(title=title, level=len(m.group(1)))


def create_prefix(headings: list[Heading]) -> str:
    return " > ".join(h.title for h in headings)


def _push_heading(headings: list[Heading], heading: Heading) -> None:
    # The root entry (file name) always stays; deeper or equal levels are replaced
    index = 1
    while index < len(headings) and headings[index].level < heading.level:
        index += 1
    del headings[index:]
    headings.append(heading)


def _parse_metadata(line: str, surrounding_lines: int) -> CardMetadata | None:
    m = _METADATA_RE.fullmatch(line)
    if not m:
        return None

    try:
        raw: Any = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        logger.warning(f"[parse] Ignoring unreadable metadata comment {line.strip()!r}: {e}")
        return None

    if not isinstance(raw, dict) or "card_type" not in raw:
        logger.warning(f"[parse] Ignoring metadata comment without card_type: {line.strip()!r}")
        return None

    try:
        lines = int(raw.get("surrounding_lines", surrounding_lines))
    except (TypeError, ValueError):
        logger.warning(f"[parse] Bad surrounding_lines in {line.strip()!r}, using {surrounding_lines}")
        lines = surrounding_lines
    return CardMetadata(card_type=str(raw["card_type"]), surrounding_lines=lines)


def _iter_lines(text: str) -> Iterator[tuple[int, str]]:
    """(offset, line) pairs; the line excludes its newline and a trailing carriage return."""
    offset = 0
    for raw in text.split("\n"):
        line = raw[:-1] if raw.endswith("\r") else raw
        yield offset, line
        offset += len(raw) + 1


def _scan(
    text: str, heading: str | None, surrounding_lines: int = DEFAULT_SURROUNDING_LINES
) -> Iterator[_LocatedCard]:
    headings = [Heading(title=heading or DEFAULT_HEADING, level=0)]
    block = _Block.NONE
    block_start = 0
    front: list[str] = []
    back: list[str] = []
    metadata: CardMetadata | None = None

    for offset, line in _iter_lines(text):
        if line == MULTILINE_FENCE:
            if block is _Block.NONE:
                block = _Block.FRONT
                block_start = offset
            elif block is _Block.FRONT:
                block = _Block.BACK
            else:
                content = CardContent(
                    prefix=create_prefix(headings),
                    front="".join(front),
                    back="".join(back),
                    metadata=metadata,
                )
                yield _LocatedCard(content, block_start, offset + len(line))
                front, back, metadata = [], [], None
                block = _Block.NONE
            continue

        if block is _Block.FRONT:
            front.append(line + "\n")
            continue
        if block is _Block.BACK:
            back.append(line + "\n")
            continue

        parsed_metadata = _parse_metadata(line, surrounding_lines)
        if parsed_metadata is not None:
            metadata = parsed_metadata
            continue

        index = line.find(INLINE_SEPARATOR)
        if index != -1:
            content = CardContent(
                prefix=create_prefix(headings),
                front=line[:index],
                back=line[index + len(INLINE_SEPARATOR) :],
                metadata=metadata,
            )
            yield _LocatedCard(content, offset, offset + len(line))
            metadata = None

        new_heading = check_markdown_heading(line)
        if new_heading is not None:
            _push_heading(headings, new_heading)

    if block is not _Block.NONE:
        logger.warning(f"[parse] Unterminated ::: block in {headings[0].title}")


def parse_cards(
    text: str,
    date: Date,
    heading: str | None = None,
    surrounding_lines: int = DEFAULT_SURROUNDING_LINES,
) -> list[Card]:
    """
    Parse every card in ``text``.

    Args:
        text: Markdown source.
        date: Creation date given to the new cards.
        heading: Root of the prefix, normally the file name.
        surrounding_lines: Default context for line cards whose metadata does not set it.
    """
    return [
        Card(content=located.content, state=MemoryState.new(date))
        for located in _scan(text, heading, surrounding_lines)
    ]


def replace_card(text: str, heading: str | None, card: Card, new_card: Card) -> str | None:
    """
    Replace the source of ``card`` in ``text`` with ``new_card``.

    Returns None when no card with the same prefix, front and back is found.
    """
    old = card.content
    for located in _scan(text, heading):
        found = located.content
        if (found.prefix, found.front, found.back) == (old.prefix, old.front, old.back):
            return text[: located.start] + new_card.content.to_markdown() + text[located.end :]
    return None
