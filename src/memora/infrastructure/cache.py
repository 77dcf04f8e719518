import json
import logging
from pathlib import Path
from typing import Any

from memora.domain.cards import Card
from memora.domain.constants import PARSING_VERSION
from memora.domain.errors import DeckFormatError

from .fs import atomic_write_text
from .storage import card_from_dict, card_to_dict

logger = logging.getLogger(__name__)


class CardCache:
    """
    Parsed cards per markdown file, keyed by path and invalidated by mtime/size.

    A cache written with a different parsing version is discarded on load.
    """

    def __init__(self, path: Path | None):
        self.path = path
        self.entries: dict[str, dict[str, Any]] = {}
        self.changed = False
        if path is not None:
            self._load(path)

    def _load(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[cache] Discarding unreadable cache {path}: {e}")
            return

        version = data.get("parsing_version") if isinstance(data, dict) else None
        if version != PARSING_VERSION:
            logger.info(f"[cache] Discarding cache with parsing version {version}")
            return
        self.entries = data.get("files", {})

    def get(self, path: Path, mtime: float, size: int) -> list[Card] | None:
        entry = self.entries.get(str(path))
        if entry is None or entry.get("mtime") != mtime or entry.get("size") != size:
            return None
        try:
            return [card_from_dict(c) for c in entry["cards"]]
        except (DeckFormatError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[cache] Bad entry for {path}, reparsing: {e!r}")
            return None

    def put(self, path: Path, mtime: float, size: int, cards: list[Card]) -> None:
        self.entries[str(path)] = {
            "mtime": mtime,
            "size": size,
            "cards": [card_to_dict(c) for c in cards],
        }
        self.changed = True

    def prune(self, keep: set[str]) -> None:
        """Forget files that no longer exist."""
        stale = [p for p in self.entries if p not in keep]
        for p in stale:
            del self.entries[p]
        if stale:
            self.changed = True

    def save(self) -> None:
        if self.path is None or not self.changed:
            return
        payload = {"parsing_version": PARSING_VERSION, "files": self.entries}
        atomic_write_text(self.path, json.dumps(payload, indent=2, ensure_ascii=False))
        self.changed = False
        logger.debug(f"[cache] Saved {len(self.entries)} files to {self.path}")
