"""
wishmatch — fuzzy command matching with recency and contexts.

Callers register actions ("wishes") with trigger phrases ("magic words");
the engine ranks them against a typed fragment, learns from what gets
picked, and hides actions that do not belong to the active context.

Quick start (programmatic API)::

    from wishmatch import create_engine

    engine = create_engine()
    engine.register({"triggers": "Open settings", "handler": open_settings})
    engine.query("os")                 # acronym match → [Action(...)]
    engine.invoke(None, "os")          # runs the best match

Quick start (CLI)::

    wishmatch query "set"
    wishmatch invoke "set"

Configuration override::

    from wishmatch import Wishmatch, WishmatchConfig

    engine = Wishmatch(config=WishmatchConfig(default_context="everywhere"))
"""

__version__ = "1.0.0"

# Primary public API: the engine facade
from wishmatch.client import Wishmatch, create_engine

# Configuration
from wishmatch.core.config import WishmatchConfig

# Core data types that callers interact with
from wishmatch.core.context import PathRule, Scope
from wishmatch.core.matcher import MatchRank
from wishmatch.core.registry import Action, NavigateDescriptor

# Exception hierarchy
from wishmatch.exceptions import (
    CatalogError,
    ConfigError,
    InvalidMagicWordError,
    SnapshotError,
    WishmatchError,
)

__all__ = [
    "__version__",
    # Facade
    "Wishmatch",
    "create_engine",
    # Config
    "WishmatchConfig",
    # Data types
    "Action",
    "MatchRank",
    "NavigateDescriptor",
    "PathRule",
    "Scope",
    # Exceptions
    "WishmatchError",
    "InvalidMagicWordError",
    "ConfigError",
    "CatalogError",
    "SnapshotError",
]
