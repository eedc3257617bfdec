"""Engine configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DEBOUNCE_MS = 300


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""


@dataclass
class EngineConfig:
    """Configuration for form controllers and the CLI.

    Attributes:
        debounce_ms: Delay before re-validating a touched field after a change
        schema_path: Directory holding ``forms/`` and ``blocks/`` YAML files
        log_level: Logging level name used by the CLI
    """

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    schema_path: Path = Path("schemas")
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.debounce_ms < 0:
            raise ConfigError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        level = self.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")
        self.log_level = level

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> EngineConfig:
        """Create config from environment variables.

        Reads:
        1. FORMRULES_DEBOUNCE_MS (default 300)
        2. FORMRULES_SCHEMA_PATH (default {base_path}/schemas, or ./schemas)
        3. FORMRULES_LOG_LEVEL (default WARNING)
        """
        raw_debounce = os.environ.get("FORMRULES_DEBOUNCE_MS")
        if raw_debounce is None or raw_debounce.strip() == "":
            debounce_ms = DEFAULT_DEBOUNCE_MS
        else:
            try:
                debounce_ms = int(raw_debounce)
            except ValueError:
                raise ConfigError(
                    f"FORMRULES_DEBOUNCE_MS must be an integer, got {raw_debounce!r}"
                ) from None

        schema_path = os.environ.get("FORMRULES_SCHEMA_PATH")
        if schema_path:
            path = Path(schema_path)
        elif base_path:
            path = base_path / "schemas"
        else:
            path = Path("schemas")

        return cls(
            debounce_ms=debounce_ms,
            schema_path=path,
            log_level=os.environ.get("FORMRULES_LOG_LEVEL", "WARNING"),
        )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000
