from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from memora.domain.constants import (
    DAY_ROLLOVER_HOURS,
    DEFAULT_CACHE_FILE,
    DEFAULT_DECK_FILE,
    DEFAULT_SURROUNDING_LINES,
    FSRS_DEFAULT_RETENTION,
    FSRS_DEFAULT_WEIGHTS,
    FSRS_WEIGHT_COUNT,
)
from memora.domain.fsrs import FsrsParams

CONFIG_FILES = [
    Path.home() / ".config/memora/config.toml",
    Path.home() / ".memora.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for memora.
    Supports loading from:
    1. Environment variables (MEMORA_*)
    2. Config file (~/.config/memora/config.toml or ~/.memora.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMORA_",
        toml_file=CONFIG_FILES,
        extra="ignore",
    )

    # Paths
    root: Path | None = None
    deck_file: str = DEFAULT_DECK_FILE
    cache_file: str = DEFAULT_CACHE_FILE
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/memora/logs")

    # Scheduling
    track_review_history: bool = True
    day_rollover_hours: int = Field(default=DAY_ROLLOVER_HOURS, ge=0, le=23)
    target_retention: float = Field(default=FSRS_DEFAULT_RETENTION, gt=0.0, lt=1.0)
    weights: list[float] = Field(default_factory=lambda: list(FSRS_DEFAULT_WEIGHTS))

    # Parsing
    surrounding_lines: int = Field(default=DEFAULT_SURROUNDING_LINES, ge=0)

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # Earlier sources win: CLI overrides, then env, then the TOML file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("root", mode="before")
    @classmethod
    def resolve_root(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("weights")
    @classmethod
    def check_weight_count(cls, v: list[float]) -> list[float]:
        if len(v) != FSRS_WEIGHT_COUNT:
            raise ValueError(f"expected {FSRS_WEIGHT_COUNT} weights, got {len(v)}")
        return v

    @property
    def notes_root(self) -> Path:
        return self.root or Path.cwd()

    @property
    def deck_path(self) -> Path:
        return self.notes_root / self.deck_file

    @property
    def cache_path(self) -> Path:
        return self.notes_root / self.cache_file

    def fsrs_params(self) -> FsrsParams:
        return FsrsParams(w=list(self.weights), target_retention=self.target_retention)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/memora/config.toml (if exists)
    3. Environment variables (MEMORA_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not give
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.root is None:
        config.root = Path.cwd()

    return config
