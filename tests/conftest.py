"""
Shared fixtures for the wishmatch test suite.
"""

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# wishmatch.core.matcher / wishmatch.client / etc. can be imported
# without installing the package.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from wishmatch import Wishmatch, WishmatchConfig  # noqa: E402


# =============================================================================
# Fixtures: engines and navigation sinks
# =============================================================================

@pytest.fixture
def config() -> WishmatchConfig:
    """Config with library defaults (no environment overrides)."""
    return WishmatchConfig()


@pytest.fixture
def navigations() -> list:
    """Records ``(target, new_surface)`` for every navigation handler call."""
    return []


@pytest.fixture
def engine(config, navigations) -> Wishmatch:
    """A fresh engine whose navigator records instead of opening a browser."""
    return Wishmatch(
        config=config,
        navigator=lambda target, new_surface: navigations.append((target, new_surface)),
    )


@pytest.fixture
def register_blank(engine):
    """Register an action with the given triggers and a no-op handler."""
    def _register(triggers, **extra):
        return engine.register({"triggers": triggers, "handler": lambda action, fragment: None, **extra})
    return _register


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """A small YAML catalog with navigation actions and path rules."""
    path = tmp_path / "wishes.yaml"
    path.write_text(
        "wishes:\n"
        "  - id: settings\n"
        "    triggers: [Open settings, Preferences]\n"
        "    target: app://settings\n"
        "  - id: docs\n"
        "    triggers: Documentation\n"
        "    target: https://example.org/docs\n"
        "    new_surface: true\n"
        "  - id: edit-user\n"
        "    triggers: Edit user\n"
        "    scope: [users]\n"
        "    target: app://users/edit\n"
        "  - id: readme\n"
        "    triggers: Readme\n"
        "path_rules:\n"
        "  - contexts: [users]\n"
        "    paths: [/users]\n"
        "    regexes: ['^/users/(\\d+)']\n"
        "  - contexts: ['user-{{1}}']\n"
        "    regexes: ['^/users/(\\d+)']\n",
        encoding="utf-8",
    )
    return path
