"""
wishmatch Match Coordinator

Turns a query fragment into an ordered list of actions and runs actions on
request.

Ordering of :meth:`MatchCoordinator.query`:

1. **Recency head** — ids the recency index holds for exactly this
   fragment, in recency order, limited to visible actions.
2. **Ranked tail** — every other action whose best trigger matches,
   grouped by tier (equal, starts-with, word-starts-with, contains,
   acronym, in-order characters), registration order inside a tier.

Handlers may call back into the engine; iteration always runs over a copy
of the action table so such calls cannot disturb a query in progress.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from wishmatch.core.context import ContextEngine
from wishmatch.core.matcher import MatchRank, best_match, normalize_word
from wishmatch.core.recency import RecencyIndex
from wishmatch.core.registry import Action, ActionRegistry

logger = logging.getLogger(__name__)

# matcher(actions, fragment, active_context, recency_index) -> ordered actions
Matcher = Callable[[List[Action], str, List[str], Dict[str, List[str]]], Iterable[Action]]


class MatchCoordinator:
    """Query and invocation over a registry, a recency index and a context engine."""

    def __init__(self, registry: ActionRegistry, recency: RecencyIndex,
                 contexts: ContextEngine):
        self.registry = registry
        self.recency = recency
        self.contexts = contexts
        self.matcher: Optional[Matcher] = None

    # ── Query ─────────────────────────────────────────────────────

    @staticmethod
    def normalize_fragment(fragment: Any) -> str:
        return normalize_word(fragment, allow_none=True).lower()

    def _head(self, fragment: str) -> Tuple[List[str], List[Action]]:
        ids = self.recency.lookup(fragment)
        head = [action for action in self.registry.get_many(ids)
                if action is not None and self.contexts.is_visible(action)]
        return ids, head

    def _ranked_tail(self, fragment: str, exclude: List[str]) -> List[Tuple[Action, MatchRank]]:
        buckets: Dict[MatchRank, List[Action]] = {}
        excluded = set(exclude)
        for action in self.registry.actions():
            if action.id in excluded or not self.contexts.is_visible(action):
                continue
            match = best_match(action.triggers, fragment)
            if match.rank != MatchRank.NO_MATCH:
                buckets.setdefault(match.rank, []).append(action)
        return [(action, tier)
                for tier in sorted(buckets, reverse=True)
                for action in buckets[tier]]

    def query(self, fragment: Any = None) -> List[Action]:
        """Matching visible actions for *fragment*, best first.

        Raises:
            InvalidMagicWordError: *fragment* is not a primitive value.
        """
        fragment = self.normalize_fragment(fragment)
        if self.matcher is not None:
            return self._custom_query(fragment)
        ids, head = self._head(fragment)
        tail = [action for action, _ in self._ranked_tail(fragment, ids)]
        return head + tail

    def _custom_query(self, fragment: str) -> List[Action]:
        return list(self.matcher(self.registry.actions(), fragment,
                                 self.contexts.context, self.recency.to_dict()))

    def rank_breakdown(self, fragment: Any = None) -> List[Tuple[Action, Optional[MatchRank]]]:
        """Like :meth:`query` but paired with the tier of each result.

        Recency-head entries carry ``None`` since their position does not
        come from a tier. With a custom matcher every result carries the
        tier of its best trigger instead.
        """
        fragment = self.normalize_fragment(fragment)
        if self.matcher is not None:
            return [(action, best_match(action.triggers, fragment).rank)
                    for action in self._custom_query(fragment)]
        ids, head = self._head(fragment)
        return [(action, None) for action in head] + self._ranked_tail(fragment, ids)

    # ── Invocation ────────────────────────────────────────────────

    def _resolve(self, action: Any, fragment: Any) -> Optional[Action]:
        if not isinstance(action, Action):
            action = self.registry.get(action)
        if action is None:
            matches = self.query(fragment)
            if matches:
                action = matches[0]
        return action

    def can_invoke(self, action: Optional[Action]) -> bool:
        """Registered, has a handler and is visible in the active context."""
        return (action is not None
                and self.registry.is_registered(action)
                and action.handler is not None
                and self.contexts.is_visible(action))

    def invoke(self, action: Any = None, fragment: Any = None) -> Optional[Action]:
        """
        Run an action's handler and reinforce it for *fragment*.

        *action* may be an :class:`Action`, an id, or ``None`` to pick the
        best match for *fragment*. Returns the action, or ``None`` when
        nothing invocable was found.
        """
        if fragment is not None:
            fragment = self.normalize_fragment(fragment)
        resolved = self._resolve(action, fragment)
        if not self.can_invoke(resolved):
            logger.debug("Refusing to invoke %r for fragment %r", action, fragment)
            return None

        resolved.handler(resolved, fragment)
        resolved.record_invocation(fragment)
        # The handler may have deregistered the action it belongs to.
        if fragment is not None and self.registry.is_registered(resolved):
            self.recency.record_invocation(fragment, resolved.id)
        logger.debug("Invoked '%s' for fragment %r", resolved.id, fragment)
        return resolved
