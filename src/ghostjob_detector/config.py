"""Configuration loading and validation.

Loads ``settings.toml`` and validates all fields at startup, before the
history store is opened or the judge model is contacted.

The validated config is exposed as a :class:`Settings` dataclass with
typed fields for each section: ``patterns``, ``fleet``, ``ollama``,
``chroma`` and ``logging``.  Every section is optional; the defaults
are the production thresholds.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from ghostjob_detector.errors import ActionableError

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class PatternsConfig:
    """Pattern-detection thresholds from ``[patterns]``."""

    similarity_threshold: float = 0.85
    suspicious_open_days: int = 90
    recycled_threshold: int = 3
    high_frequency_days: int = 7
    high_frequency_count: int = 5


@dataclass
class FleetConfig:
    """Cross-company report settings from ``[fleet]``."""

    min_similar_ids: int = 3
    page_size: int = 500


@dataclass
class OllamaConfig:
    """Ollama connection settings from ``[ollama]``."""

    base_url: str = "http://localhost:11434"
    llm_model: str = "mistral:7b"


@dataclass
class ChromaConfig:
    """ChromaDB settings from ``[chroma]``."""

    persist_dir: str = "./data/chroma_db"


@dataclass
class LoggingConfig:
    """Log file settings from ``[logging]``."""

    log_dir: str = "data/logs"
    level: str = "INFO"


@dataclass
class Settings:
    """Top-level validated configuration."""

    patterns: PatternsConfig = field(default_factory=PatternsConfig)
    fleet: FleetConfig = field(default_factory=FleetConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Default settings path
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load and validate settings from a TOML file.

    Raises :class:`~ghostjob_detector.errors.ActionableError`:
      - CONFIG if the file is missing or a section is not a table
      - INVALID_INPUT if field values are out of range
      - PARSE if the TOML is malformed

    Returns a fully validated :class:`Settings` instance.
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.config(
            field_name="settings_path",
            reason=f"Settings file not found: {filepath}",
            suggestion=f"Create {filepath} or copy from config/settings.toml",
        )

    raw_text = filepath.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source=str(filepath),
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None

    return _validate(data)


def _validate(data: dict[str, object]) -> Settings:
    """Validate raw TOML data and return a Settings instance."""

    # -- patterns section ----------------------------------------------------
    patterns_data = _optional_section(data, "patterns")
    patterns = PatternsConfig(
        similarity_threshold=float(patterns_data.get("similarity_threshold", 0.85)),
        suspicious_open_days=int(patterns_data.get("suspicious_open_days", 90)),
        recycled_threshold=int(patterns_data.get("recycled_threshold", 3)),
        high_frequency_days=int(patterns_data.get("high_frequency_days", 7)),
        high_frequency_count=int(patterns_data.get("high_frequency_count", 5)),
    )

    if not 0.0 < patterns.similarity_threshold <= 1.0:
        raise ActionableError.invalid_input(
            field_name="patterns.similarity_threshold",
            reason=f"is {patterns.similarity_threshold} — must be in (0.0, 1.0]",
            suggestion="Set [patterns].similarity_threshold to a value such as 0.85",
        )
    for name in (
        "suspicious_open_days",
        "recycled_threshold",
        "high_frequency_days",
        "high_frequency_count",
    ):
        value = getattr(patterns, name)
        if value < 0:
            raise ActionableError.invalid_input(
                field_name=f"patterns.{name}",
                reason=f"is {value} — must be >= 0",
                suggestion=f"Set [patterns].{name} to a non-negative integer",
            )

    # -- fleet section -------------------------------------------------------
    fleet_data = _optional_section(data, "fleet")
    fleet = FleetConfig(
        min_similar_ids=int(fleet_data.get("min_similar_ids", 3)),
        page_size=int(fleet_data.get("page_size", 500)),
    )
    if fleet.min_similar_ids < 0:
        raise ActionableError.invalid_input(
            field_name="fleet.min_similar_ids",
            reason=f"is {fleet.min_similar_ids} — must be >= 0",
        )
    if fleet.page_size < 1:
        raise ActionableError.invalid_input(
            field_name="fleet.page_size",
            reason=f"is {fleet.page_size} — must be >= 1",
        )

    # -- ollama section ------------------------------------------------------
    ollama_data = _optional_section(data, "ollama")

    base_url = str(ollama_data.get("base_url", "http://localhost:11434"))
    if not base_url.startswith(("http://", "https://")):
        raise ActionableError.invalid_input(
            field_name="ollama.base_url",
            reason=f"'{base_url}' is missing a scheme (http:// or https://)",
            suggestion="Set [ollama].base_url to a URL starting with http:// or https://",
        )

    ollama = OllamaConfig(
        base_url=base_url,
        llm_model=str(ollama_data.get("llm_model", "mistral:7b")),
    )

    # -- chroma section ------------------------------------------------------
    chroma_data = _optional_section(data, "chroma")
    chroma = ChromaConfig(
        persist_dir=str(chroma_data.get("persist_dir", "./data/chroma_db")),
    )

    # -- logging section -----------------------------------------------------
    logging_data = _optional_section(data, "logging")
    level = str(logging_data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ActionableError.invalid_input(
            field_name="logging.level",
            reason=f"'{level}' is not a logging level",
            suggestion="Use one of DEBUG, INFO, WARNING, ERROR",
        )
    log_config = LoggingConfig(
        log_dir=str(logging_data.get("log_dir", "data/logs")),
        level=level,
    )

    return Settings(
        patterns=patterns,
        fleet=fleet,
        ollama=ollama,
        chroma=chroma,
        logging=log_config,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _optional_section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return a top-level section (empty if absent), or raise CONFIG if it is not a table."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ActionableError.config(
            field_name=name,
            reason=f"[{name}] must be a table, not {type(section).__name__}",
            suggestion=f"Define [{name}] as a TOML table",
        )
    return section
