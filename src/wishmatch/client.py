"""
wishmatch Client Facade

Single entry point for programmatic use of wishmatch. One :class:`Wishmatch`
instance is one engine: its actions, recency index, contexts and path rules
live on the instance, never in module state.

Usage::

    from wishmatch import create_engine

    engine = create_engine()

    engine.register({
        "triggers": ["Open settings", "Preferences"],
        "handler": lambda action, fragment: print("settings!"),
    })
    engine.register({
        "triggers": "Docs",
        "handler": {"target": "https://example.org/docs", "open_in_new_surface": True},
    })

    matches = engine.query("set")        # [Action(id=g-0, ...)]
    engine.invoke(matches[0], "set")     # runs the handler, reinforces it for "set"

    engine.set_context("editor")         # only actions visible in "editor" now match
    engine.set_enabled(False)            # every call returns an empty placeholder
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from wishmatch.core.config import WishmatchConfig
from wishmatch.core.context import MATCH_TYPES, ContextEngine, PathRule, as_labels, matches_scope
from wishmatch.core.engine import MatchCoordinator, Matcher
from wishmatch.core.matcher import MatchRank
from wishmatch.core.recency import RecencyIndex
from wishmatch.core.registry import Action, ActionRegistry, Navigator

logger = logging.getLogger(__name__)


def _none() -> None:
    return None


def _when_enabled(empty: Callable[[], Any]):
    """
    Gate a public method on the engine's enabled flag.

    While disabled the method does not run; it returns ``empty()`` when
    :attr:`Wishmatch.return_empty_when_disabled` is set and ``None``
    otherwise.
    """
    def decorator(method):
        @functools.wraps(method)
        def gated(self: "Wishmatch", *args, **kwargs):
            if self._enabled:
                return method(self, *args, **kwargs)
            logger.debug("Engine disabled, skipping %s()", method.__name__)
            return empty() if self._return_empty_when_disabled else None
        return gated
    return decorator


class Wishmatch:
    """
    High-level wishmatch engine.

    Args:
        config: Explicit configuration object. When *None*, a config is
            built from environment variables or keyword overrides.
        navigator: Sink for navigation handlers, called as
            ``navigator(target, new_surface)``. Defaults to the system
            web browser.
        validate_on_init: Call :meth:`WishmatchConfig.validate` right away.
        **kwargs: Forwarded to :class:`WishmatchConfig` when *config* is
            ``None`` (e.g. ``default_context="home"``).
    """

    def __init__(
        self,
        config: WishmatchConfig | None = None,
        *,
        navigator: Navigator | None = None,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = WishmatchConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = WishmatchConfig(**merged)
        else:
            self._config = WishmatchConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._enabled = self._config.enabled
        self._return_empty_when_disabled = self._config.return_empty_when_disabled

        self._recency = RecencyIndex()
        self._contexts = ContextEngine(self._config.default_context)
        self._registry = ActionRegistry(
            self._recency,
            default_label=self._config.default_context,
            id_prefix=self._config.id_prefix,
            navigator=navigator,
        )
        self._coordinator = MatchCoordinator(self._registry, self._recency, self._contexts)

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> WishmatchConfig:
        """The active configuration for this engine."""
        return self._config

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def return_empty_when_disabled(self) -> bool:
        return self._return_empty_when_disabled

    def set_enabled(self, enabled: bool) -> bool:
        """Turn the engine on or off. Never gated, so it can always be re-enabled."""
        self._enabled = bool(enabled)
        logger.debug("Engine %s", "enabled" if self._enabled else "disabled")
        return self._enabled

    def set_return_empty_when_disabled(self, flag: bool) -> bool:
        self._return_empty_when_disabled = bool(flag)
        return self._return_empty_when_disabled

    # ── Registration ──────────────────────────────────────────────

    @_when_enabled(_none)
    def register(self, spec: Mapping[str, Any] | Action) -> Action:
        """
        Register one action.

        *spec* keys: ``id`` (optional), ``triggers``, ``scope``,
        ``payload``, ``handler``. A registered action with the same id is
        replaced.

        Raises:
            InvalidMagicWordError: a trigger is not a string or number.
        """
        return self._registry.register(spec)

    @_when_enabled(list)
    def register_batch(self, specs: Iterable[Mapping[str, Any] | Action]) -> List[Action]:
        return self._registry.register_batch(specs)

    @_when_enabled(list)
    def merge_batch(self, specs: Mapping[str, Any]) -> List[Action]:
        """Merge id-keyed specs, keeping registered handlers (see :meth:`ActionRegistry.merge_batch`)."""
        return self._registry.merge_batch(specs)

    @_when_enabled(_none)
    def deregister(self, action: Action | str) -> Optional[Action]:
        return self._registry.deregister(action)

    @_when_enabled(list)
    def deregister_with_context(
        self,
        labels: Any,
        match_type: str = "any",
        kinds: Iterable[str] | None = None,
    ) -> List[Action]:
        """
        Deregister every action whose scope mentions *labels*.

        Args:
            labels: Label or labels to look for.
            match_type: ``'any'`` | ``'all'`` | ``'none'``.
            kinds: Scope constraint kinds to inspect (default: all).

        Raises:
            ValueError: unknown *match_type*.
        """
        return self._deregister_with_context(labels, match_type, kinds)

    def _deregister_with_context(self, labels, match_type="any", kinds=None) -> List[Action]:
        if match_type not in MATCH_TYPES:
            raise ValueError(f"match_type must be one of {MATCH_TYPES}, got {match_type!r}")
        doomed = [action for action in self._registry.actions()
                  if matches_scope(action.scope, labels, match_type, kinds)]
        return [self._registry.deregister(action) for action in doomed]

    # ── Lookup ────────────────────────────────────────────────────

    @_when_enabled(_none)
    def get(self, action_id: str) -> Optional[Action]:
        return self._registry.get(action_id)

    @_when_enabled(list)
    def get_many(self, action_ids: Iterable[str]) -> List[Optional[Action]]:
        """Actions in the order of *action_ids*; ``None`` for unknown ids."""
        return self._registry.get_many(action_ids)

    @_when_enabled(list)
    def get_actions_in_context(self, labels: Any = None) -> List[Action]:
        """
        Actions that would be visible if *labels* were the active context.

        Without *labels* every registered action is returned.
        """
        labels = as_labels(labels) or [self._config.default_context]
        return [action for action in self._registry.actions()
                if self._contexts.in_context(action.scope, labels)]

    # ── Matching ──────────────────────────────────────────────────

    @_when_enabled(list)
    def query(self, fragment: Any = None) -> List[Action]:
        """Visible actions matching *fragment*, best first."""
        return self._coordinator.query(fragment)

    @_when_enabled(list)
    def rank_breakdown(self, fragment: Any = None) -> List[tuple[Action, Optional[MatchRank]]]:
        return self._coordinator.rank_breakdown(fragment)

    @_when_enabled(_none)
    def invoke(self, action: Action | str | None = None, fragment: Any = None) -> Optional[Action]:
        """
        Run *action* (or the best match for *fragment*).

        Returns the action, or ``None`` if it is unknown, has no handler,
        or is not visible in the active context.
        """
        return self._coordinator.invoke(action, fragment)

    @_when_enabled(_none)
    def override_matching_algorithm(self, matcher: Matcher) -> None:
        """
        Replace the built-in ordering of :meth:`query`.

        *matcher* is called as ``matcher(actions, fragment, context,
        recency_index)`` with every registered action, the normalized
        fragment, the active context and a copy of the recency index, and
        returns the actions to offer, best first. :meth:`invoke` without an
        action takes the first of them.

        Raises:
            TypeError: *matcher* is not callable.
        """
        if not callable(matcher):
            raise TypeError(f"matcher must be callable, got {type(matcher).__name__}")
        self._coordinator.matcher = matcher
        logger.debug("Matching algorithm overridden by %r", matcher)

    @_when_enabled(_none)
    def restore_matching_algorithm(self) -> None:
        """Go back to the built-in recency-then-tier ordering."""
        self._coordinator.matcher = None

    # ── Context ───────────────────────────────────────────────────

    @_when_enabled(list)
    def context(self) -> List[str]:
        return self._contexts.context

    @_when_enabled(list)
    def set_context(self, labels: Any) -> List[str]:
        return self._contexts.set_context(labels)

    @_when_enabled(list)
    def add_context(self, labels: Any) -> List[str]:
        return self._contexts.add_context(labels)

    @_when_enabled(list)
    def remove_context(self, labels: Any) -> List[str]:
        return self._contexts.remove_context(labels)

    @_when_enabled(list)
    def revert_context(self) -> List[str]:
        return self._contexts.revert_context()

    @_when_enabled(list)
    def reset_context_to_default(self) -> List[str]:
        return self._contexts.reset_context_to_default()

    # ── Path contexts ─────────────────────────────────────────────

    @_when_enabled(list)
    def add_path_rule(self, rules: Any) -> List[PathRule]:
        """Add one rule (a :class:`PathRule` or mapping) or a list of them."""
        return self._contexts.add_path_rules(self._as_rule_list(rules))

    @_when_enabled(list)
    def remove_path_rule(self, rules: Any) -> List[PathRule]:
        return self._contexts.remove_path_rules(self._as_rule_list(rules))

    @staticmethod
    def _as_rule_list(rules: Any) -> list:
        return list(rules) if isinstance(rules, (list, tuple)) else [rules]

    @_when_enabled(list)
    def resolve_path_context(self, path: str, suppress_deregistration: bool = False) -> List[str]:
        """
        Update the active context for the application *path*.

        Labels of rules that do not match *path*, and stale labels left by
        placeholder rules, are removed (and, unless
        *suppress_deregistration*, actions mentioning them are
        deregistered). Labels of matching rules are then added.

        Returns:
            The new active context.
        """
        if path:
            resolved = self._contexts.resolve_path_contexts(path)
            to_remove = self._contexts.stale_dynamic_contexts() + resolved.remove
            self._contexts.remove_context(to_remove)
            if not suppress_deregistration and to_remove:
                removed = self._deregister_with_context(to_remove)
                if removed:
                    logger.debug("Path %r deregistered %d action(s)", path, len(removed))
            self._contexts.add_context(resolved.add)
        return self._contexts.context

    # ── State ─────────────────────────────────────────────────────

    @_when_enabled(dict)
    def snapshot(self) -> Dict[str, Any]:
        """
        Detached copy of the engine state.

        Keys: ``actions`` (id → :class:`Action` copy), ``next_id``,
        ``recency_index``, ``active_context``, ``previous_context``,
        ``enabled``.
        """
        return self._snapshot()

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "actions": {action.id: action.copy() for action in self._registry.actions()},
            "next_id": self._registry.next_id,
            "recency_index": self._recency.to_dict(),
            "active_context": self._contexts.context,
            "previous_context": self._contexts.previous_context,
            "enabled": self._enabled,
        }

    @_when_enabled(dict)
    def restore(self, snapshot: Mapping[str, Any], merge: bool = False) -> Dict[str, Any]:
        """
        Load a snapshot produced by :meth:`snapshot` (or its JSON form).

        With *merge*, actions go through :meth:`merge_batch` so entries
        without a handler keep the registered one; otherwise the action
        table is replaced. Missing keys leave the current value in place.

        Returns:
            The resulting snapshot.
        """
        actions = snapshot.get("actions")
        if actions is not None:
            if merge:
                self._registry.merge_batch({
                    action_id: action.copy() if isinstance(action, Action) else action
                    for action_id, action in actions.items()
                })
            else:
                self._registry.replace_all(actions)
        if snapshot.get("next_id") is not None:
            self._registry.next_id = int(snapshot["next_id"])
        if snapshot.get("recency_index") is not None:
            self._recency.clear()
            self._recency.update(snapshot["recency_index"])
        self._contexts.restore(snapshot.get("active_context"), snapshot.get("previous_context"))
        if snapshot.get("enabled") is not None:
            self._enabled = bool(snapshot["enabled"])
        return self._snapshot()

    @_when_enabled(dict)
    def reset(self) -> Dict[str, Any]:
        """Forget every action, recency entry and context. Returns the old state."""
        old = self._snapshot()
        self._registry.clear()
        self._recency.clear()
        self._contexts.restore([self._config.default_context], [self._config.default_context])
        return old

    # ── Health ────────────────────────────────────────────────────

    @_when_enabled(dict)
    def health(self) -> Dict[str, object]:
        """Small status dict for status endpoints and the CLI."""
        from wishmatch import __version__

        return {
            "version": __version__,
            "actions": len(self._registry),
            "recorded_fragments": len(self._recency),
            "path_rules": len(self._contexts.path_rules),
            "active_context": self._contexts.context,
        }


def create_engine(config: WishmatchConfig | None = None, *,
                  navigator: Navigator | None = None, **kwargs) -> Wishmatch:
    """Build an independent engine instance."""
    return Wishmatch(config, navigator=navigator, **kwargs)
