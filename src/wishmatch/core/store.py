"""
wishmatch State Store & Catalog Loader

File plumbing around the engine:

* :class:`StateStore` keeps an engine snapshot in a JSON sidecar file
  (``.wishmatch/state.json`` by default). Callable handlers cannot be
  serialized and are dropped; navigation handlers are stored as their
  descriptor. Restore with ``merge=True`` so saved actions pick their
  handlers back up from the freshly loaded catalog.
* :func:`load_catalog` reads action specs and path rules from a YAML
  catalog::

      wishes:
        - id: docs
          triggers: [Documentation, Help]
          scope: [editor]
          target: https://example.org/docs
          new_surface: true
      path_rules:
        - contexts: [editor]
          paths: [/edit]
        - contexts: ["user-{{1}}"]
          regexes: ["^/users/(\\\\d+)"]
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from wishmatch.core.context import PathRule
from wishmatch.core.registry import Action
from wishmatch.exceptions import CatalogError, SnapshotError

logger = logging.getLogger(__name__)


# =============================================================================
# Saved state
# =============================================================================

def snapshot_to_json(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Plain-data form of a snapshot (actions become dicts)."""
    data = dict(snapshot)
    data["actions"] = {
        action_id: action.to_dict() if isinstance(action, Action) else action
        for action_id, action in snapshot.get("actions", {}).items()
    }
    return data


class StateStore:
    """JSON file holding one engine snapshot."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Any]:
        """
        Read the saved snapshot; an absent file yields ``{}``.

        Raises:
            SnapshotError: the file is unreadable or not a JSON object.
        """
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SnapshotError(f"Cannot read saved state {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SnapshotError(f"Saved state {self.path} is not a JSON object.")
        return data

    def save(self, snapshot: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot_to_json(snapshot), indent=2, allow_nan=False)
        self.path.write_text(payload, encoding="utf-8")
        logger.debug("Saved engine state to %s", self.path)

    def clear(self) -> bool:
        if self.path.exists():
            self.path.unlink()
            return True
        return False


# =============================================================================
# Catalog
# =============================================================================

_CATALOG_KEYS = {"id", "triggers", "scope", "target", "new_surface", "payload"}


@dataclass
class Catalog:
    """Action specs and path rules read from one catalog file."""
    specs: List[Dict[str, Any]] = field(default_factory=list)
    path_rules: List[PathRule] = field(default_factory=list)


def _catalog_rule(entry: Any, position: int, source: Path) -> PathRule:
    if not isinstance(entry, dict) or not entry.get("contexts"):
        raise CatalogError(f"{source}: path rule #{position} needs 'contexts'.")
    try:
        return PathRule.create(entry["contexts"], entry.get("paths"), entry.get("regexes"))
    except re.error as exc:
        raise CatalogError(f"{source}: path rule #{position} has a bad regex: {exc}") from exc


def _catalog_entry_to_spec(entry: Any, position: int, source: Path) -> Dict[str, Any]:
    if not isinstance(entry, dict):
        raise CatalogError(f"{source}: entry #{position} is not a mapping.")
    if not entry.get("triggers"):
        raise CatalogError(f"{source}: entry #{position} has no triggers.")
    unknown = set(entry) - _CATALOG_KEYS
    if unknown:
        logger.warning("%s: entry #%d has unknown keys %s", source, position, sorted(unknown))

    spec: Dict[str, Any] = {
        "id": entry.get("id"),
        "triggers": entry["triggers"],
        "scope": entry.get("scope"),
        "payload": dict(entry.get("payload") or {}),
    }
    if entry.get("target"):
        spec["handler"] = {
            "target": str(entry["target"]),
            "open_in_new_surface": bool(entry.get("new_surface", False)),
        }
    return spec


def load_catalog(path: Path) -> Catalog:
    """
    Read action specs and path rules from a YAML catalog.

    Raises:
        CatalogError: the file is missing, not valid YAML, or an entry
            is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise CatalogError(f"Action catalog not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise CatalogError(f"{path}: invalid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogError(f"{path}: expected a mapping with 'wishes' and 'path_rules'.")
    wishes = data.get("wishes") or []
    rules = data.get("path_rules") or []
    if not isinstance(wishes, list) or not isinstance(rules, list):
        raise CatalogError(f"{path}: 'wishes' and 'path_rules' must be lists.")

    catalog = Catalog(
        specs=[_catalog_entry_to_spec(entry, position, path)
               for position, entry in enumerate(wishes, start=1)],
        path_rules=[_catalog_rule(entry, position, path)
                    for position, entry in enumerate(rules, start=1)],
    )
    logger.debug("Loaded %d action spec(s) and %d path rule(s) from %s",
                 len(catalog.specs), len(catalog.path_rules), path)
    return catalog
