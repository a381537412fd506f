"""
wishmatch Configuration Module

Instance-based configuration for the wishmatch engine, its saved-state
sidecar and the command-line interface.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CONTEXT = "universe"
"""Label of the universal context: when active, every action is visible."""

DEFAULT_ID_PREFIX = "g-"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class WishmatchConfig:
    """
    Configuration for one wishmatch engine.

    Each instance is self-contained and passed explicitly to the engine it
    configures, so several engines (or tests) never share settings.

    Create from environment variables::

        config = WishmatchConfig.from_env()

    Or with explicit values::

        config = WishmatchConfig(default_context="everywhere", id_prefix="cmd-")
    """

    # ── Engine ────────────────────────────────────────────────────
    default_context: str = DEFAULT_CONTEXT
    id_prefix: str = DEFAULT_ID_PREFIX
    enabled: bool = True
    return_empty_when_disabled: bool = True
    """When disabled, return ``[]``/``{}``/``None`` placeholders instead of plain ``None``."""

    # ── Sidecar state & catalog ───────────────────────────────────
    state_dir: str = ".wishmatch"
    state_file_name: str = "state.json"
    catalog_file_name: str = "wishes.yaml"

    # ── Output ────────────────────────────────────────────────────
    max_results: int = 10  # 0 = no cap

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "WishmatchConfig":
        """Build a config snapshot from current environment variables."""
        return cls(
            default_context=os.getenv("WISHMATCH_DEFAULT_CONTEXT", DEFAULT_CONTEXT),
            id_prefix=os.getenv("WISHMATCH_ID_PREFIX", DEFAULT_ID_PREFIX),
            return_empty_when_disabled=_env_flag("WISHMATCH_RETURN_EMPTY", True),
            catalog_file_name=os.getenv("WISHMATCH_CATALOG", "wishes.yaml"),
            max_results=int(os.getenv("WISHMATCH_MAX_RESULTS", "10")),
            log_level=os.getenv("WISHMATCH_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Check the settings for values the engine cannot work with.

        Raises :class:`~wishmatch.exceptions.ConfigError` on failure.
        """
        from wishmatch.exceptions import ConfigError

        if not self.default_context:
            raise ConfigError(
                "default_context must be a non-empty label.\n"
                "  Set via: export WISHMATCH_DEFAULT_CONTEXT=universe"
            )
        if not self.id_prefix:
            raise ConfigError("id_prefix must be a non-empty string.")
        if self.max_results < 0:
            raise ConfigError(
                f"max_results must be >= 0 (got {self.max_results})."
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(
                f"Unknown log level '{self.log_level}'. "
                "Use DEBUG, INFO, WARNING, ERROR or CRITICAL."
            )
        return True

    def get_state_path(self, base_dir: Path) -> Path:
        """Path of the saved-state file inside the sidecar directory *base_dir*."""
        return base_dir / self.state_file_name

    def get_catalog_path(self, base_dir: Path) -> Path:
        """Path of the default action catalog under *base_dir*."""
        return base_dir / self.catalog_file_name
