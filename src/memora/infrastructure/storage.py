"""
JSON persistence for decks.

Only the persistent part of a deck is written; session state is rebuilt on demand.
Dates are stored as day numbers and review-log entries in their encoded form.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from memora.application.deck import Deck
from memora.domain.calendar import Date
from memora.domain.cards import Card, CardContent, CardMetadata
from memora.domain.constants import PARSING_VERSION
from memora.domain.errors import ContractViolation, DeckFormatError
from memora.domain.fsrs import FsrsParams, MemoryState, ReviewLogItem

from .fs import atomic_write_text

logger = logging.getLogger(__name__)


def state_to_dict(state: MemoryState) -> dict[str, Any]:
    return {
        "date_added": state.date_added.day,
        "last_review": state.last_review.day,
        "review_date": state.review_date.day,
        "difficulty": state.difficulty,
        "stability": state.stability,
        "buried": state.buried,
        "complete_history": state.complete_history,
        "review_log": [item.encode() for item in state.review_log],
    }


def state_from_dict(data: dict[str, Any]) -> MemoryState:
    return MemoryState(
        date_added=Date(int(data["date_added"])),
        last_review=Date(int(data["last_review"])),
        review_date=Date(int(data["review_date"])),
        difficulty=float(data["difficulty"]),
        stability=float(data["stability"]),
        buried=bool(data.get("buried", False)),
        complete_history=bool(data.get("complete_history", True)),
        review_log=[ReviewLogItem.decode(int(v)) for v in data.get("review_log", [])],
    )


def card_to_dict(card: Card) -> dict[str, Any]:
    c = card.content
    content: dict[str, Any] = {
        "prefix": c.prefix,
        "front": c.front,
        "back": c.back,
        "editable": c.editable,
        "base": c.base,
        "child_index": c.child_index,
    }
    if c.metadata is not None:
        content["metadata"] = {
            "card_type": c.metadata.card_type,
            "surrounding_lines": c.metadata.surrounding_lines,
        }
    return {"content": content, "state": state_to_dict(card.state)}


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def card_from_dict(data: dict[str, Any]) -> Card:
    c = data["content"]
    metadata = None
    if c.get("metadata") is not None:
        m = c["metadata"]
        metadata = CardMetadata(
            card_type=str(m["card_type"]), surrounding_lines=int(m["surrounding_lines"])
        )
    content = CardContent(
        prefix=str(c["prefix"]),
        front=str(c["front"]),
        back=str(c["back"]),
        editable=bool(c.get("editable", True)),
        base=_optional_int(c.get("base")),
        child_index=_optional_int(c.get("child_index")),
        metadata=metadata,
    )
    return Card(content=content, state=state_from_dict(data["state"]))


def deck_to_dict(deck: Deck) -> dict[str, Any]:
    return {
        "parsing_version": deck.parsing_version,
        "track_review_history": deck.track_review_history,
        "params": deck.params.model_dump(),
        "cards": [card_to_dict(c) for c in deck.cards],
        "orphans": [card_to_dict(c) for c in deck.orphans],
        "base_cards": [card_to_dict(c) for c in deck.base_cards],
    }


def deck_from_dict(data: dict[str, Any]) -> Deck:
    """
    Build a deck from its JSON form.

    Raises:
        DeckFormatError: On missing fields, bad values, invalid params,
            a newer parsing version or dangling base handles.
    """
    try:
        version = int(data.get("parsing_version", PARSING_VERSION))
        if version > PARSING_VERSION:
            raise DeckFormatError(
                f"deck was written with parsing version {version}, "
                f"this version of memora reads up to {PARSING_VERSION}"
            )
        deck = Deck(
            cards=[card_from_dict(c) for c in data["cards"]],
            orphans=[card_from_dict(c) for c in data.get("orphans", [])],
            base_cards=[card_from_dict(c) for c in data.get("base_cards", [])],
            params=FsrsParams.model_validate(data.get("params", {})),
            track_review_history=bool(data.get("track_review_history", False)),
            parsing_version=version,
        )
    except ValidationError as e:
        raise DeckFormatError(f"invalid model parameters: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DeckFormatError(f"malformed deck data: {e!r}") from e

    try:
        deck.check_handles()
    except ContractViolation as e:
        raise DeckFormatError(str(e)) from e
    return deck


class DeckRepository:
    """Loads and saves a deck as a pretty-printed JSON file."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Deck:
        text = self.path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DeckFormatError(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise DeckFormatError(f"{self.path} does not contain a deck object")

        deck = deck_from_dict(data)
        logger.debug(f"[storage] Loaded {len(deck.cards)} cards from {self.path}")
        return deck

    def save(self, deck: Deck) -> None:
        atomic_write_text(self.path, json.dumps(deck_to_dict(deck), indent=2, ensure_ascii=False))
        logger.debug(f"[storage] Saved {len(deck.cards)} cards to {self.path}")
