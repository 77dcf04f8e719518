"""memora CLI: deck management, review, scheduling and statistics commands."""

import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import click
import typer

from memora.application.config import resolve_config
from memora.application.deck import Deck
from memora.application.simulation import simulate_review
from memora.application.stats import TOTAL_KEY, ReviewStatsCalculator
from memora.domain.calendar import Date
from memora.domain.cards import Card, Editability
from memora.domain.constants import DEFAULT_RANDOM_REVIEW_COUNT, DEFAULT_RESCHEDULE_FRACTION
from memora.domain.errors import NotEditableError
from memora.domain.fsrs import GRADEABLE_OUTCOMES, Outcome
from memora.domain.rng import SplitMix64
from memora.infrastructure.markdown import parse_cards
from memora.infrastructure.tsv import TSV_HEADERS, dump_tsv, format_to_tsv, load_deck_from_tsv
from memora.interface._common import (
    _resolve_with_overrides,
    handles_errors,
    load_deck,
    repository_for,
    save_deck,
    today_for,
    vault_for,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="memora: spaced-repetition flashcards from your markdown notes.",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Manage memora configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

REVIEW_LOG_HEADER = "card_id,review_time,review_rating,review_state,review_duration"

_ANSWER_KEYS = {
    "1": Outcome.AGAIN,
    "2": Outcome.HARD,
    "3": Outcome.GOOD,
    "4": Outcome.EASY,
    "b": Outcome.BURY,
}


def _seed_or_clock(seed: int | None) -> int:
    return seed if seed is not None else int(time.time())


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Annotated[
        Path | None,
        typer.Option("--root", "-r", help="Notes directory holding the deck. Defaults to CWD."),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for memora."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Deck lifecycle
# ---------------------------------------------------------------------------


@app.command()
@handles_errors
def init(ctx: typer.Context):
    """Create an empty deck in the notes directory."""
    config = _resolve_with_overrides(ctx)
    repo = repository_for(config)
    if repo.exists():
        typer.secho(f"A deck has already been initialized at {repo.path}.", fg="red", err=True)
        raise typer.Exit(1)

    deck = Deck(params=config.fsrs_params(), track_review_history=config.track_review_history)
    repo.save(deck)
    typer.secho(f"Initialized empty deck at {repo.path}", fg="green")


@app.command()
@handles_errors
def update(
    ctx: typer.Context,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show the result without saving.")
    ] = False,
):
    """Re-read the markdown notes and merge them into the deck."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    collection = vault_for(config).collect(today_for(config))
    deck.replace_cards(collection)
    save_deck(config, deck, dry_run=dry_run)
    typer.echo(
        f"Deck updated: {len(deck.cards)} cards, {len(deck.base_cards)} base cards, "
        f"{len(deck.orphans)} orphans"
    )


@app.command()
@handles_errors
def status(ctx: typer.Context):
    """Show deck size and today's workload."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    today = today_for(config)
    buried = sum(1 for c in deck.cards if c.state.buried)
    new = sum(1 for c in deck.cards if c.state.first_review())

    typer.echo(f"Cards: {len(deck.cards)}  New: {new}  Buried: {buried}")
    typer.echo(f"Due today ({today}): {deck.cards_to_review_count(today)}")
    if deck.orphans:
        typer.secho(f"Orphans: {len(deck.orphans)}", fg="yellow")


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


def _edit_current(deck: Deck, card_index: int, today: Date) -> None:
    card = deck.cards[card_index]
    editability = card.content.editability()
    if editability is Editability.NOT_EDITABLE:
        typer.secho("This card cannot be edited.", fg="yellow")
        return

    source = card if editability is Editability.EDITABLE else deck.base_card_for(card_index)
    edited = click.edit(source.content.to_markdown() + "\n", extension=".md")
    if edited is None:
        typer.echo("No changes.")
        return
    parsed = parse_cards(edited, today)
    if len(parsed) != 1:
        typer.secho(f"Expected exactly one card, found {len(parsed)}.", fg="yellow")
        return

    front, back = parsed[0].content.front, parsed[0].content.back
    if editability is Editability.EDITABLE:
        deck.edit_card(card_index, front, back)
    else:
        base = card.content.base
        if base is None:
            raise NotEditableError(f"{card!r} has no base card")
        new_card = Card(content=replace(source.content, front=front, back=back), state=source.state)
        deck.edit_base_card(base, new_card)
    typer.secho("Card updated.", fg="green")


def _review_loop(deck: Deck, today: Date, rng: SplitMix64) -> int:
    answered = 0
    while (card_index := deck.current_card_index()) is not None:
        card = deck.cards[card_index]

        typer.echo("")
        typer.secho(f"[{deck.active_review_count()} left] {card.content.prefix}", fg="cyan")
        typer.echo(card.content.front)
        typer.prompt("Press enter to show the answer", default="", show_default=False)
        typer.echo(card.content.back)

        previews = "  ".join(
            f"[{int(o)}] {o.name.lower()} ({card.state.next_interval(o, today, rng, deck.params)}d)"
            for o in GRADEABLE_OUTCOMES
        )
        while True:
            choice = typer.prompt(f"{previews}  [b]ury [e]dit [q]uit").strip().lower()
            if choice == "q":
                deck.stop_review()
                return answered
            if choice == "e":
                _edit_current(deck, card_index, today)
                continue
            if choice in _ANSWER_KEYS:
                deck.review_card(_ANSWER_KEYS[choice], rng)
                answered += 1
                break
            typer.secho("Unknown answer.", fg="yellow")
    return answered


@app.command()
@handles_errors
def review(
    ctx: typer.Context,
    all_cards: Annotated[
        bool, typer.Option("--all", help="Review every card, due or not.")
    ] = False,
    random: Annotated[
        int | None,
        typer.Option(
            "--random",
            help=f"Review N random cards (e.g. {DEFAULT_RANDOM_REVIEW_COUNT}).",
            min=1,
        ),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Random seed. Defaults to the clock.")] = None,
):
    """Review due cards interactively."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    today = today_for(config)
    rng = SplitMix64.from_seed(_seed_or_clock(seed))

    if random is not None:
        deck.start_random_review(today, rng, random)
    elif all_cards:
        deck.start_all_review(today, rng)
    else:
        deck.start_review(today, rng)

    if not deck.in_session:
        typer.secho("Nothing to review.", fg="green")
        return

    try:
        answered = _review_loop(deck, today, rng)
    finally:
        save_deck(config, deck)
    typer.secho(f"{answered} answers recorded.", fg="green")


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.command()
@handles_errors
def export(
    ctx: typer.Context,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to a file instead of stdout.")
    ] = None,
    orphans: Annotated[bool, typer.Option("--orphans", help="Export orphans too.")] = False,
):
    """Export cards as tab-separated rows."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    cards = deck.cards + deck.orphans if orphans else deck.cards
    text = dump_tsv(cards, today_for(config))
    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Exported {len(cards)} cards to {output}")


@app.command("import")
@handles_errors
def import_(
    ctx: typer.Context,
    source: Annotated[str, typer.Argument(help="TSV file to read, or '-' for stdin.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Replace an existing deck.")
    ] = False,
):
    """Replace the deck with cards from a TSV export."""
    config = _resolve_with_overrides(ctx)
    repo = repository_for(config)
    if repo.exists() and not force:
        typer.secho("A deck already exists. Use --force to replace it.", fg="red", err=True)
        raise typer.Exit(1)

    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    deck = load_deck_from_tsv(text, today_for(config))
    deck.params = config.fsrs_params()
    deck.track_review_history = config.track_review_history
    repo.save(deck)
    typer.echo(f"Imported {len(deck.cards)} cards")


@app.command()
def headers():
    """Print the column names of the TSV export."""
    typer.echo("\t".join(TSV_HEADERS))


# ---------------------------------------------------------------------------
# Orphans and search
# ---------------------------------------------------------------------------


@app.command("orphans")
@handles_errors
def orphans_cmd(ctx: typer.Context):
    """List cards whose source no longer exists."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    for card in deck.orphans:
        typer.echo(f"{card.content.prefix} - {card.content.singleline_front}")


@app.command("delete-orphans")
@handles_errors
def delete_orphans(ctx: typer.Context):
    """Drop orphans and their review history."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    count = deck.delete_orphans()
    save_deck(config, deck)
    typer.echo(f"{count} orphans deleted")


@app.command()
@handles_errors
def find(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Words that must all appear in the card.")],
    stats: Annotated[
        bool, typer.Option("--stats", help="Print memory metrics instead of TSV rows.")
    ] = False,
):
    """Search cards and print matches as TSV rows."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    today = today_for(config)
    calculator = ReviewStatsCalculator()
    for index in deck.find_cards(query):
        card = deck.cards[index]
        if not stats:
            typer.echo(format_to_tsv(card, today))
            continue

        s = calculator.enrich(card, today)
        retention = "-" if s.current_retention is None else f"{s.current_retention:.2f}"
        typer.echo(
            f"{s.prefix} - {card.content.singleline_front}\t"
            f"stability={s.stability:.1f} difficulty={s.difficulty:.1f} "
            f"reviews={s.reviews} lapses={s.lapses} retention={retention} "
            f"overdue={s.days_overdue}"
        )


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


@app.command()
@handles_errors
def schedule(
    ctx: typer.Context,
    days: Annotated[int, typer.Argument(help="Spread due cards over this many days.", min=1)],
    max_cards: Annotated[
        int, typer.Argument(help="Cards per day; raised if too low to fit.", min=1)
    ] = 1,
):
    """Flatten the review workload of the coming days."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    typer.echo(f"Scheduling with days {days}, max cards {max_cards}")
    placed = deck.reschedule(today_for(config), days, max_cards)
    save_deck(config, deck)
    typer.echo(f"{placed} cards scheduled")


@app.command("schedule-random")
@handles_errors
def schedule_random(
    ctx: typer.Context,
    fraction: Annotated[
        float,
        typer.Argument(help="e.g. 0.1 for intervals between 0.9x and 1.1x.", min=0.0, max=1.0),
    ] = DEFAULT_RESCHEDULE_FRACTION,
    seed: Annotated[int | None, typer.Option(help="Random seed. Defaults to the clock.")] = None,
):
    """Randomly stretch or shrink every interval."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    typer.echo(
        f"Scheduling with rng, between {1.0 - fraction} and {1.0 + fraction} of optimal length"
    )
    deck.random_reschedule_fractional(fraction, SplitMix64.from_seed(_seed_or_clock(seed)))
    save_deck(config, deck)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@app.command()
@handles_errors
def accuracy(ctx: typer.Context):
    """Share of correct first answers per day (-1 is the overall total)."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    data = ReviewStatsCalculator().accuracy_by_day(deck.cards, today_for(config))
    for day, acc in data.items():
        if acc.total == 0 and day == TOTAL_KEY:
            continue
        typer.echo(f"{day}\t{acc.accuracy}\t{acc.correct}\t{acc.total}")


@app.command("review-log")
@handles_errors
def review_log(ctx: typer.Context):
    """Export review history as CSV for FSRS parameter optimisation."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    typer.echo(REVIEW_LOG_HEADER)
    for row in ReviewStatsCalculator().review_log_rows(deck.cards):
        typer.echo(row.to_csv())


@app.command()
@handles_errors
def simulate(
    ctx: typer.Context,
    days: Annotated[int, typer.Argument(help="Number of days to simulate.", min=1)],
    seed: Annotated[int, typer.Option(help="Random seed.")] = 0,
):
    """Preview the number of due cards per day."""
    config = _resolve_with_overrides(ctx)
    deck = load_deck(config)
    for day in simulate_review(deck, today_for(config), days, seed=seed):
        typer.echo(f"{day.offset} {day.cards}")


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


@app.command()
def logs(ctx: typer.Context):
    """Open the log directory."""
    config = _resolve_with_overrides(ctx)
    typer.echo(f"Logs are in {config.log_dir}")
    click.launch(str(config.log_dir))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
