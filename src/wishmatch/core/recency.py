"""
wishmatch Recency Index

Maps each fragment a caller has invoked an action with to the ids of the
actions invoked for it, most recently reinforced first. Query results for a
fragment lead with these ids.

Reordering follows a "king of the hill" rule: an action invoked for the
first time (or after dropping off the top two) lands *behind* the current
leader, and only an action that is already second takes the top spot. An
action therefore has to be picked twice in a row before it displaces the
leader.
"""

import logging
from typing import Dict, List, Mapping, Sequence

logger = logging.getLogger(__name__)


class RecencyIndex:
    """Fragment → ordered action ids."""

    def __init__(self, entries: Mapping[str, Sequence[str]] | None = None):
        self._entries: Dict[str, List[str]] = {}
        if entries:
            self.update(entries)

    # ── Reinforcement ─────────────────────────────────────────────

    def record_invocation(self, fragment: str, action_id: str) -> None:
        ids = self._entries.setdefault(fragment, [])
        try:
            existing = ids.index(action_id)
        except ValueError:
            existing = -1

        if existing == 0:
            return
        if existing == 1:
            ids[0], ids[1] = ids[1], ids[0]
            logger.debug("'%s' took the top spot for %r", action_id, fragment)
            return

        if existing != -1:
            del ids[existing]
        # On deck behind the current leader, or leader of an empty list.
        ids.insert(1 if ids else 0, action_id)
        logger.debug("'%s' recorded at position %d for %r",
                     action_id, ids.index(action_id), fragment)

    # ── Lookup ────────────────────────────────────────────────────

    def lookup(self, fragment: str) -> List[str]:
        """Ids recorded for exactly *fragment*, leader first (a copy)."""
        return list(self._entries.get(fragment, ()))

    def __len__(self) -> int:
        return len(self._entries)

    # ── Removal ───────────────────────────────────────────────────

    def purge(self, action_id: str) -> int:
        """
        Remove *action_id* from every fragment list.

        Lists left empty are dropped. Returns the number of lists touched.
        """
        touched = 0
        for fragment in list(self._entries):
            ids = self._entries[fragment]
            if action_id in ids:
                ids.remove(action_id)
                touched += 1
            if not ids:
                del self._entries[fragment]
        return touched

    def clear(self) -> None:
        self._entries.clear()

    # ── Serialization ─────────────────────────────────────────────

    def update(self, entries: Mapping[str, Sequence[str]]) -> None:
        """Install fragment lists from a plain mapping (e.g. a snapshot)."""
        for fragment, ids in entries.items():
            ids = [str(action_id) for action_id in ids]
            if ids:
                self._entries[str(fragment)] = ids

    def to_dict(self) -> Dict[str, List[str]]:
        return {fragment: list(ids) for fragment, ids in self._entries.items()}
