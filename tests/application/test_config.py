from pathlib import Path

import pytest
from pydantic import ValidationError

from memora.application import config as config_module
from memora.application.config import AppConfig, resolve_config
from memora.domain.constants import DEFAULT_DECK_FILE, FSRS_DEFAULT_WEIGHTS


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = resolve_config()
    assert config.root == Path.cwd()
    assert config.deck_path == Path.cwd() / DEFAULT_DECK_FILE
    assert config.weights == list(FSRS_DEFAULT_WEIGHTS)
    assert config.track_review_history is True
    assert config.fsrs_params().target_retention == 0.9


def test_env_overrides_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("MEMORA_TARGET_RETENTION", "0.85")
    monkeypatch.setenv("MEMORA_ROOT", str(tmp_path))
    config = resolve_config()
    assert config.target_retention == 0.85
    assert config.root == tmp_path.resolve()


def test_toml_file_is_read(tmp_path, monkeypatch):
    toml = tmp_path / "config.toml"
    toml.write_text('deck_file = "cards.json"\nsurrounding_lines = 1\n', encoding="utf-8")
    monkeypatch.setattr(config_module, "CONFIG_FILES", [tmp_path / "missing.toml", toml])

    config = resolve_config()
    assert config.deck_file == "cards.json"
    assert config.surrounding_lines == 1


def test_precedence_cli_over_env_over_toml(tmp_path, monkeypatch):
    toml = tmp_path / "config.toml"
    toml.write_text("day_rollover_hours = 2\nverbose = 3\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "CONFIG_FILES", [toml])
    monkeypatch.setenv("MEMORA_DAY_ROLLOVER_HOURS", "5")

    config = resolve_config({"verbose": 0, "deck_file": None})
    assert config.day_rollover_hours == 5
    assert config.verbose == 0
    assert config.deck_file == DEFAULT_DECK_FILE


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        AppConfig(target_retention=1.5)
    with pytest.raises(ValidationError):
        AppConfig(weights=[1.0, 2.0])
    with pytest.raises(ValidationError):
        AppConfig(day_rollover_hours=30)
