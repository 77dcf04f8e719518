"""Shared helpers for CLI commands: config resolution, deck access, error reporting."""

import functools
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import ValidationError

from memora.application.config import AppConfig, resolve_config
from memora.application.deck import Deck
from memora.application.vault_service import VaultService
from memora.domain.calendar import Date
from memora.domain.constants import LOG_FILE_NAME
from memora.domain.errors import DeckFormatError, MemoraError
from memora.infrastructure.cache import CardCache
from memora.infrastructure.storage import DeckRepository

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_file_handler: logging.FileHandler | None = None


def humanize_error(e: Exception) -> str:
    if isinstance(e, DeckFormatError):
        return f"Deck file is damaged or from a newer version: {e}"
    if isinstance(e, ValidationError):
        return f"Invalid configuration: {e.error_count()} problem(s)\n{e}"
    return str(e)


def handles_errors(func: F) -> F:
    """Report memora errors in red and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (MemoraError, ValidationError) as e:
            typer.secho(humanize_error(e), fg="red", err=True)
            raise typer.Exit(1) from e

    return wrapper  # type: ignore[return-value]


def _resolve_with_overrides(ctx: typer.Context | None = None, **kwargs: Any) -> AppConfig:
    overrides = dict(kwargs)
    if ctx is not None and ctx.obj:
        overrides.setdefault("root", ctx.obj.get("root"))
        overrides.setdefault("verbose", ctx.obj.get("verbose_bonus"))
    config = resolve_config(overrides)
    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    configure_file_logging(config.log_dir)
    return config


def configure_file_logging(log_dir: Path) -> None:
    """Mirror log records into ``log_dir/memora.log``."""
    global _file_handler
    log_file = os.path.abspath(log_dir / LOG_FILE_NAME)
    root = logging.getLogger()
    if _file_handler is not None:
        if _file_handler.baseFilename == log_file:
            return
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        logger.warning(f"[logs] File logging disabled, cannot write to {log_dir}: {e}")
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    root.addHandler(handler)
    _file_handler = handler


def today_for(config: AppConfig) -> Date:
    return Date.today(config.day_rollover_hours)


def repository_for(config: AppConfig) -> DeckRepository:
    return DeckRepository(config.deck_path)


def load_deck(config: AppConfig) -> Deck:
    repo = repository_for(config)
    if not repo.exists():
        typer.secho(
            f"No deck found at {repo.path}. Run 'memora init' first.", fg="red", err=True
        )
        raise typer.Exit(1)
    return repo.load()


def vault_for(config: AppConfig) -> VaultService:
    return VaultService(config.notes_root, CardCache(config.cache_path), config.surrounding_lines)


def save_deck(config: AppConfig, deck: Deck, dry_run: bool = False) -> None:
    """Write pending card edits back to the markdown sources, then save the deck."""
    edits = deck.drain_edited_cards()
    if edits:
        written = vault_for(config).apply_edits(edits, dry_run=dry_run)
        logger.info(f"[write] {written}/{len(edits)} edits written to markdown")
    if dry_run:
        logger.info(f"[dry-run] Would save deck to {config.deck_path}")
        return
    repository_for(config).save(deck)
