"""Tests for CLI commands: deck lifecycle, review, import/export, scheduling and statistics."""

import json

import click
import pytest
from typer.testing import CliRunner

from memora.domain.errors import DeckFormatError, MemoraError
from memora.interface._common import humanize_error
from memora.interface.cli import app

runner = CliRunner()

NOTES = "# Topic\nq:: a\ncloze:: x {{{y}}} z\n"


@pytest.fixture
def vault(mock_vault):
    (mock_vault / "notes.md").write_text(NOTES, encoding="utf-8")
    return mock_vault


def invoke(root, *args, **kwargs):
    return runner.invoke(app, ["--root", str(root), *args], **kwargs)


@pytest.fixture
def deck_root(vault):
    assert invoke(vault, "init").exit_code == 0
    assert invoke(vault, "update").exit_code == 0
    return vault


def _load(root):
    return json.loads((root / "memodeck.json").read_text(encoding="utf-8"))


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition flashcards" in result.stdout
    assert "review" in result.stdout
    assert "schedule" in result.stdout


# --- Deck lifecycle ---


def test_init_creates_deck(vault):
    result = invoke(vault, "init")
    assert result.exit_code == 0
    assert "Initialized empty deck" in result.stdout
    data = _load(vault)
    assert data["cards"] == []
    assert data["track_review_history"] is True


def test_init_twice_fails(vault):
    invoke(vault, "init")
    result = invoke(vault, "init")
    assert result.exit_code == 1
    assert "already been initialized" in result.output


def test_missing_deck(vault):
    result = invoke(vault, "status")
    assert result.exit_code == 1
    assert "memora init" in result.output


def test_damaged_deck(vault):
    (vault / "memodeck.json").write_text("{bad", encoding="utf-8")
    result = invoke(vault, "status")
    assert result.exit_code == 1
    assert "damaged" in result.output


def test_update(vault):
    invoke(vault, "init")
    result = invoke(vault, "update")
    assert result.exit_code == 0
    assert "Deck updated: 2 cards, 1 base cards, 0 orphans" in result.stdout
    assert (vault / ".memocache.json").exists()


def test_update_dry_run(vault):
    invoke(vault, "init")
    result = invoke(vault, "update", "--dry-run")
    assert result.exit_code == 0
    assert _load(vault)["cards"] == []


def test_status(deck_root):
    result = invoke(deck_root, "status")
    assert result.exit_code == 0
    assert "Cards: 2  New: 2  Buried: 0" in result.stdout
    assert ": 2" in result.stdout


# --- Review ---


def test_review_answers_every_card(deck_root):
    result = invoke(deck_root, "review", "--seed", "1", input="\n3\n\n3\n")
    assert result.exit_code == 0, result.output
    assert "2 answers recorded." in result.stdout

    cards = _load(deck_root)["cards"]
    assert all(len(c["state"]["review_log"]) == 1 for c in cards)
    assert invoke(deck_root, "review").stdout.strip() == "Nothing to review."


def test_review_quit_saves_progress(deck_root):
    result = invoke(deck_root, "review", "--seed", "1", input="\nb\n\nq\n")
    assert result.exit_code == 0, result.output
    assert "1 answers recorded." in result.stdout
    assert sum(c["state"]["buried"] for c in _load(deck_root)["cards"]) == 1


def test_review_edit_writes_back(mock_vault, monkeypatch):
    (mock_vault / "notes.md").write_text("intro\nq:: a\n", encoding="utf-8")
    invoke(mock_vault, "init")
    invoke(mock_vault, "update")
    monkeypatch.setattr(click, "edit", lambda text, extension: "q:: edited\n")

    result = invoke(mock_vault, "review", "--seed", "1", input="\ne\n3\n")

    assert result.exit_code == 0, result.output
    assert "Card updated." in result.stdout
    assert "1 answers recorded." in result.stdout
    assert (mock_vault / "notes.md").read_text(encoding="utf-8") == "intro\nq:: edited\n"
    assert _load(mock_vault)["cards"][0]["content"]["back"] == "edited"


def test_review_unknown_answer(deck_root):
    result = invoke(deck_root, "review", "--random", "1", "--seed", "2", input="\nx\n4\n")
    assert result.exit_code == 0, result.output
    assert "Unknown answer." in result.stdout
    assert "1 answers recorded." in result.stdout


# --- Import / export ---


def test_headers():
    result = runner.invoke(app, ["headers"])
    assert result.exit_code == 0
    assert result.stdout.startswith("Days to review\tDifficulty\tStability")


def test_export_and_import(deck_root, tmp_path):
    exported = tmp_path / "deck.tsv"
    result = invoke(deck_root, "export", "-o", str(exported))
    assert result.exit_code == 0
    assert "Exported 2 cards" in result.stdout
    assert len(exported.read_text(encoding="utf-8").splitlines()) == 2

    other = tmp_path / "other"
    other.mkdir()
    result = invoke(other, "import", str(exported))
    assert result.exit_code == 0
    assert "Imported 2 cards" in result.stdout
    assert [c["content"]["front"] for c in _load(other)["cards"]] == [
        c["content"]["front"] for c in _load(deck_root)["cards"]
    ]


def test_import_refuses_to_overwrite(deck_root, tmp_path):
    exported = tmp_path / "deck.tsv"
    exported.write_text("", encoding="utf-8")
    assert invoke(deck_root, "import", str(exported)).exit_code == 1
    assert invoke(deck_root, "import", str(exported), "--force").exit_code == 0
    assert _load(deck_root)["cards"] == []


def test_import_from_stdin(vault):
    line = "0\t0.0\t0.0\tnotes.md\tfront\tback\t0\ttrue\t0\n"
    result = invoke(vault, "import", "-", input=line)
    assert result.exit_code == 0
    assert _load(vault)["cards"][0]["content"]["front"] == "front"


def test_import_bad_tsv(vault, tmp_path):
    bad = tmp_path / "bad.tsv"
    bad.write_text("0\t0.0\n", encoding="utf-8")
    result = invoke(vault, "import", str(bad))
    assert result.exit_code == 1
    assert "missing field" in result.output


# --- Orphans and search ---


def test_orphans(deck_root):
    (deck_root / "notes.md").write_text("# Topic\ncloze:: x {{{y}}} z\n", encoding="utf-8")
    assert "1 orphans" in invoke(deck_root, "update").stdout

    result = invoke(deck_root, "orphans")
    assert result.stdout.strip() == "notes.md > Topic - q"

    result = invoke(deck_root, "delete-orphans")
    assert result.stdout.strip() == "1 orphans deleted"
    assert _load(deck_root)["orphans"] == []


def test_find(deck_root):
    result = invoke(deck_root, "find", "cloze")
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert len(lines) == 1
    assert "cloze\\n\\nx {...} z" in lines[0]


def test_find_with_stats(deck_root):
    result = invoke(deck_root, "find", "q", "--stats")
    assert result.exit_code == 0
    assert result.stdout.strip() == (
        "notes.md > Topic - q\tstability=0.0 difficulty=0.0 "
        "reviews=0 lapses=0 retention=- overdue=0"
    )


# --- Scheduling ---


def test_schedule(deck_root):
    result = invoke(deck_root, "schedule", "4", "1")
    assert result.exit_code == 0
    assert "Scheduling with days 4, max cards 1" in result.stdout
    assert "2 cards scheduled" in result.stdout
    days = sorted(c["state"]["review_date"] for c in _load(deck_root)["cards"])
    assert days[1] - days[0] == 1


def test_schedule_random(deck_root):
    invoke(deck_root, "review", "--seed", "1", input="\n3\n\n3\n")
    result = invoke(deck_root, "schedule-random", "0.2", "--seed", "3")
    assert result.exit_code == 0
    assert "between 0.8 and 1.2 of optimal length" in result.stdout


# --- Statistics ---


def test_accuracy_and_review_log(deck_root):
    invoke(deck_root, "review", "--seed", "1", input="\n1\n\n3\n\n3\n")

    result = invoke(deck_root, "accuracy")
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "-1\t0.5\t1\t2"
    assert lines[1] == "0\t0.5\t1\t2"

    result = invoke(deck_root, "review-log")
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0] == "card_id,review_time,review_rating,review_state,review_duration"
    assert len(lines) == 4


def test_accuracy_of_new_deck(deck_root):
    result = invoke(deck_root, "accuracy")
    assert result.exit_code == 0
    assert result.stdout == ""


def test_simulate(deck_root):
    result = invoke(deck_root, "simulate", "3", "--seed", "5")
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert [line.split()[0] for line in lines] == ["0", "1", "2"]
    assert lines[0] == "0 2"


# --- Config ---


def test_config_show(monkeypatch):
    monkeypatch.setenv("MEMORA_SURROUNDING_LINES", "4")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["surrounding_lines"] == 4
    assert data["deck_file"] == "memodeck.json"


# --- Logs ---


def test_logs_command(tmp_path, monkeypatch):
    launched = []
    monkeypatch.setattr(click, "launch", lambda url, **kwargs: launched.append(url))

    result = runner.invoke(app, ["logs"])

    assert result.exit_code == 0
    assert launched == [str(tmp_path / "logs")]
    assert (tmp_path / "logs").is_dir()


def test_commands_open_the_log_file(deck_root, tmp_path):
    assert (tmp_path / "logs" / "memora.log").exists()


# --- humanize_error ---


def test_humanize_error_simple():
    assert humanize_error(MemoraError("Some error")) == "Some error"


def test_humanize_error_deck_format():
    msg = humanize_error(DeckFormatError("missing field 'Back'"))
    assert "damaged" in msg
    assert "missing field 'Back'" in msg
