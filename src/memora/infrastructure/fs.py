from collections.abc import Iterator
from pathlib import Path

from memora.domain.constants import MARKDOWN_SUFFIX


def iter_markdown_files(root: Path) -> Iterator[Path]:
    """
    Markdown files under ``root``, recursively, in a stable order.
    Hidden files and directories (leading dot) are skipped.
    """
    try:
        entries = sorted(root.iterdir())
    except OSError:
        return

    for entry in entries:
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            yield from iter_markdown_files(entry)
        elif entry.name.endswith(MARKDOWN_SUFFIX):
            yield entry


def read_text(path: Path) -> str:
    """Read a markdown file with CRLF line endings normalised to LF."""
    return path.read_text(encoding="utf-8").replace("\r\n", "\n")


def atomic_write_text(path: Path, text: str) -> None:
    """Write to a sibling temp file, then rename over ``path``."""
    temp = path.with_name(path.name + ".temp")
    temp.write_text(text, encoding="utf-8")
    temp.replace(path)
