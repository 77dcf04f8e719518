import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from pathlib import Path

from memora.domain.calendar import Date
from memora.domain.cards import Card, Collection
from memora.domain.constants import DEFAULT_SURROUNDING_LINES
from memora.infrastructure.cache import CardCache
from memora.infrastructure.fs import atomic_write_text, iter_markdown_files, read_text
from memora.infrastructure.markdown import parse_cards, replace_card


class VaultService:
    def __init__(
        self,
        root: Path,
        cache: CardCache,
        surrounding_lines: int = DEFAULT_SURROUNDING_LINES,
    ):
        self.root = root
        self.cache = cache
        self.surrounding_lines = surrounding_lines
        self.logger = logging.getLogger(__name__)

    def scan(self, today: Date) -> Iterator[tuple[Path, list[Card], bool]]:
        """
        Iterates over all markdown files under the root and yields their cards.
        Returns: (path, cards, is_fresh)
                 is_fresh=True means we just parsed it (cache was cold/dirty).
                 is_fresh=False means the cards came from the cache.
        """
        for p in iter_markdown_files(self.root):
            try:
                st = p.stat()
            except OSError as e:
                self.logger.warning(f"[vault] Skipped {p.name}: stat_error:{e}")
                continue

            cached = self.cache.get(p, st.st_mtime, st.st_size)
            if cached is not None:
                self.logger.debug(f"[vault] {p.name}: {len(cached)} cards (cached)")
                yield p, cached, False
                continue

            try:
                text = read_text(p)
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"[vault] Skipped {p.name}: read_error:{e}")
                continue

            cards = parse_cards(text, today, p.name, self.surrounding_lines)
            self.cache.put(p, st.st_mtime, st.st_size, cards)
            self.logger.debug(f"[vault] {p.name}: {len(cards)} cards (parsed)")
            yield p, cards, True

    def collect(self, today: Date) -> Collection:
        """Parse every markdown file under the root into one collection."""
        cards: list[Card] = []
        seen: set[str] = set()
        fresh = 0
        for p, file_cards, is_fresh in self.scan(today):
            cards.extend(file_cards)
            seen.add(str(p))
            fresh += int(is_fresh)

        self.cache.prune(seen)
        self.cache.save()

        self.logger.info(
            f"[vault] {len(cards)} cards in {len(seen)} files ({fresh} parsed, "
            f"{len(seen) - fresh} cached)"
        )
        return Collection.from_cards(cards)

    def apply_edits(self, edits: Iterable[tuple[Card, Card]], dry_run: bool = False) -> int:
        """
        Writes edited cards back to their markdown source.

        The source file is the one named by the card prefix. Cards that cannot
        be located are logged and skipped.

        Returns:
            Number of edits written.
        """
        by_name: dict[str, list[Path]] = defaultdict(list)
        for p in iter_markdown_files(self.root):
            by_name[p.name].append(p)

        written = 0
        for old, new in edits:
            name = old.content.md_filename
            applied = False
            for md_path in by_name.get(name, []):
                try:
                    text = read_text(md_path)
                except (OSError, UnicodeDecodeError) as e:
                    self.logger.error(f"[error] write-back {md_path}: {e}")
                    continue

                new_text = replace_card(text, md_path.name, old, new)
                if new_text is None:
                    continue

                if dry_run:
                    self.logger.info(f"[dry-run] Would update {old!r} in {md_path}")
                else:
                    atomic_write_text(md_path, new_text)
                    self.logger.debug(f"[write] {md_path}: updated {old!r}")
                applied = True

            if applied:
                written += 1
            else:
                self.logger.warning(f"[vault] Could not find {old!r} in {name or 'any file'}")

        return written
