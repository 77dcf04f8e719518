import os

import pytest

from memora.application import config as config_module
from memora.application.deck import Deck
from memora.domain.calendar import Date
from memora.domain.cards import Card, Collection
from memora.domain.fsrs import FsrsParams


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config files and MEMORA_* variables out of every test."""
    monkeypatch.setattr(
        config_module, "CONFIG_FILES", [tmp_path / "no-such-dir" / "config.toml"]
    )
    for name in list(os.environ):
        if name.startswith("MEMORA_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("MEMORA_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def mock_vault(tmp_path):
    """Creates a temporary notes directory."""
    d = tmp_path / "MyVault"
    d.mkdir()
    return d


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def params():
    return FsrsParams()


@pytest.fixture
def today():
    return Date.from_ymd(2024, 1, 1)


@pytest.fixture
def deck_factory(today):
    """Builds a deck from (front, back) pairs the same way an update would."""

    def make(pairs: list[tuple[str, str]], date: Date | None = None) -> Deck:
        date = date or today
        collection = Collection.from_cards([Card.new(f, b, "File", date) for f, b in pairs])
        deck = Deck()
        deck.replace_cards(collection)
        return deck

    return make
