"""
Cloze span extraction.

A ``ClozeSequence`` walks a text body and yields one ``ClozeSpan`` per hidden
region. Three styles are supported:

- ``{{{hidden}}}`` (triple brace): context on both sides.
- ``(((hidden)))`` (triple paren): recalled in order, so only the text before
  the span is shown as context.
- lines: every non-blank line is hidden in turn, with ``lines_before_after``
  lines of context on each side.

A backslash right before a closing delimiter escapes it: the backslash is
dropped from the hidden text and the match is extended by one character.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from .constants import DEFAULT_SURROUNDING_LINES


class ClozeStyle(Enum):
    TRIPLE_BRACE = "brace"
    TRIPLE_PAREN = "paren"
    LINES = "lines"


_DELIMITERS = {
    ClozeStyle.TRIPLE_BRACE: ("{{{", "}}}"),
    ClozeStyle.TRIPLE_PAREN: ("(((", ")))"),
}


@dataclass(frozen=True)
class ClozeSpan:
    """
    One hidden region of a text body.

    Attributes:
        cloze_start: Offset of the opening delimiter (or of the hidden line).
        cloze_end: Offset just past the match (or past the trailing context).
        before: Context shown before the hidden text.
        clozed: The hidden text.
        after: Context shown after the hidden text.
    """

    cloze_start: int
    cloze_end: int
    before: str
    clozed: str
    after: str


@dataclass(frozen=True)
class _Line:
    start: int
    end: int


def _split_lines(text: str) -> list[_Line]:
    """Non-blank lines, each starting at its first non-whitespace character."""
    lines: list[_Line] = []
    pos = 0
    length = len(text)
    while pos < length:
        while pos < length and text[pos].isspace():
            pos += 1
        if pos >= length:
            break
        end = text.find("\n", pos)
        if end == -1:
            end = length
        lines.append(_Line(pos, end))
        pos = end
    return lines


def _iter_delimited(text: str, style: ClozeStyle) -> Iterator[ClozeSpan]:
    opening, closing = _DELIMITERS[style]
    cursor = 0
    while True:
        start = text.find(opening, cursor)
        if start == -1:
            return
        close = text.find(closing, start + len(opening))
        if close == -1:
            return

        hidden_end = close
        end = close + len(closing)
        if close > start + len(opening) and text[close - 1] == "\\":
            hidden_end = close - 1
            end = min(end + 1, len(text))

        cursor = end
        yield ClozeSpan(
            cloze_start=start,
            cloze_end=end,
            before=text[:start],
            clozed=text[start + len(opening) : hidden_end],
            after=text[end:] if style is ClozeStyle.TRIPLE_BRACE else "",
        )


def _iter_lines(text: str, lines_before_after: int) -> Iterator[ClozeSpan]:
    lines = _split_lines(text)
    last = len(lines) - 1
    for index, line in enumerate(lines):
        first_context = lines[max(index - lines_before_after, 0)]
        last_context = lines[min(index + lines_before_after, last)]
        yield ClozeSpan(
            cloze_start=line.start,
            cloze_end=last_context.end,
            before=text[first_context.start : line.start],
            clozed=text[line.start : line.end],
            after=text[line.end : last_context.end],
        )


class ClozeSequence:
    """Lazy, finite and restartable sequence of cloze spans over ``text``."""

    def __init__(
        self,
        text: str,
        style: ClozeStyle,
        lines_before_after: int = DEFAULT_SURROUNDING_LINES,
    ):
        if lines_before_after < 0:
            raise ValueError("lines_before_after must not be negative")
        self.text = text
        self.style = style
        self.lines_before_after = lines_before_after

    def __iter__(self) -> Iterator[ClozeSpan]:
        if self.style is ClozeStyle.LINES:
            return _iter_lines(self.text, self.lines_before_after)
        return _iter_delimited(self.text, self.style)

    def first(self) -> ClozeSpan | None:
        return next(iter(self), None)


def detect_style(text: str) -> ClozeStyle | None:
    """Delimited style whose opening and closing markers both appear in ``text``."""
    for style, (opening, closing) in _DELIMITERS.items():
        if opening in text and closing in text:
            return style
    return None


def render_plain(text: str, style: ClozeStyle) -> str:
    """Replace every delimited span with its hidden text."""
    if style is ClozeStyle.LINES:
        return text

    parts: list[str] = []
    prev_end = 0
    for span in ClozeSequence(text, style):
        parts.append(text[prev_end : span.cloze_start])
        parts.append(span.clozed)
        prev_end = span.cloze_end
    parts.append(text[prev_end:])
    return "".join(parts)
