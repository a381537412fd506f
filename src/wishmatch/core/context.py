"""
wishmatch Context Engine

Contexts are labels describing where the application currently is. Each
action carries a :class:`Scope`; the engine keeps the *active context* (an
ordered label list) and decides which actions are visible in it.

A scope combines four constraints, all of which must hold:

* ``any``  — the active context contains at least one of these labels
* ``all``  — the active context contains every one of these labels
* ``none`` — the active context contains none of these labels
* ``path`` — the active context starts with these labels, in order

``path`` gives hierarchical scoping: an action scoped to
``["settings", "users"]`` is visible in ``["settings", "users"]`` and in
``["settings", "users", "edit"]``, but not in ``["settings"]`` or
``["settings", "billing"]``.

The engine also maps application paths (URLs, routes) to labels through
:class:`PathRule` objects.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

SCOPE_KINDS = ("any", "all", "none", "path")
MATCH_TYPES = ("any", "all", "none")

_PLACEHOLDER = re.compile(r"\{\{(\d+)\}\}")


def as_labels(labels: Any) -> List[str]:
    """Normalize a label argument: ``None`` → ``[]``, ``"a"`` → ``["a"]``."""
    if labels is None:
        return []
    if isinstance(labels, str):
        return [labels]
    return [str(label) for label in labels]


# =============================================================================
# Scope
# =============================================================================

@dataclass(frozen=True)
class Scope:
    """Visibility constraints of one action."""
    any: Tuple[str, ...] = ()
    all: Tuple[str, ...] = ()
    none: Tuple[str, ...] = ()
    path: Tuple[str, ...] = ()

    @classmethod
    def universal(cls, default_label: str) -> "Scope":
        return cls(any=(default_label,))

    @classmethod
    def coerce(cls, value: Any, default_label: str) -> "Scope":
        """
        Build a scope from the shorthand forms accepted at registration.

        * ``None`` — the universal scope
        * ``"label"`` or a ``set`` of labels — an ``any`` constraint
        * a ``list``/``tuple`` — a hierarchical ``path``
        * a mapping with ``any``/``all``/``none``/``path`` keys
        """
        if value is None:
            return cls.universal(default_label)
        if isinstance(value, Scope):
            return value
        if isinstance(value, str):
            return cls(any=(value,))
        if isinstance(value, (set, frozenset)):
            return cls(any=tuple(sorted(str(label) for label in value)))
        if isinstance(value, (list, tuple)):
            if not value:
                return cls.universal(default_label)
            return cls(path=tuple(str(label) for label in value))
        if isinstance(value, Mapping):
            unknown = set(value) - set(SCOPE_KINDS)
            if unknown:
                logger.warning("Ignoring unknown scope keys: %s", sorted(unknown))
            scope = cls(**{
                kind: tuple(as_labels(value.get(kind)))
                for kind in SCOPE_KINDS
            })
            if scope.is_empty:
                return cls.universal(default_label)
            return scope
        raise TypeError(f"Cannot build a scope from {type(value).__name__}: {value!r}")

    @property
    def is_empty(self) -> bool:
        return not (self.any or self.all or self.none or self.path)

    def is_universal(self, default_label: str) -> bool:
        return self.any == (default_label,) or self.path == (default_label,)

    def labels(self, kinds: Optional[Iterable[str]] = None) -> List[str]:
        """Labels of the selected constraint kinds (all kinds by default)."""
        collected: List[str] = []
        for kind in (SCOPE_KINDS if kinds is None else as_labels(kinds)):
            collected.extend(getattr(self, kind))
        return collected

    def to_dict(self) -> dict:
        return {kind: list(getattr(self, kind)) for kind in SCOPE_KINDS if getattr(self, kind)}


def scope_satisfied(scope: Scope, context: Sequence[str]) -> bool:
    """True when every constraint of *scope* holds in *context*."""
    contains_any = not scope.any or any(label in context for label in scope.any)
    contains_all = (len(context) >= len(scope.all)
                    and all(label in context for label in scope.all))
    contains_none = not any(label in context for label in scope.none)
    on_path = tuple(context[:len(scope.path)]) == scope.path
    return contains_any and contains_all and contains_none and on_path


def matches_scope(scope: Scope, labels: Any, match_type: str = "any",
                  kinds: Optional[Iterable[str]] = None) -> bool:
    """
    Compare the labels a scope mentions with *labels*.

    ``any``: the scope mentions at least one of *labels*; ``all``: it
    mentions every one; ``none``: it mentions none of them. Scopes that
    mention no label at all never match.
    """
    if match_type not in MATCH_TYPES:
        raise ValueError(f"match_type must be one of {MATCH_TYPES}, got {match_type!r}")
    scope_labels = scope.labels(kinds)
    if not scope_labels:
        return False
    wanted = as_labels(labels)
    if match_type == "all":
        return all(label in scope_labels for label in wanted)
    if match_type == "none":
        return not any(label in scope_labels for label in wanted)
    return any(label in scope_labels for label in wanted)


# =============================================================================
# Path rules
# =============================================================================

@dataclass(frozen=True)
class PathRule:
    """
    Labels to add while the application sits on certain paths.

    ``contexts`` may contain ``{{N}}`` placeholders, replaced by capture
    group *N* of the regex that matched. Such labels are "dynamic": a stale
    one left over from a previous path is removed on the next resolution.
    """
    contexts: Tuple[str, ...]
    paths: Tuple[str, ...] = ()
    regexes: Tuple[re.Pattern, ...] = ()

    @classmethod
    def create(cls, contexts: Any, paths: Any = None, regexes: Any = None) -> "PathRule":
        if isinstance(regexes, (str, re.Pattern)):
            regexes = [regexes]
        compiled = tuple(re.compile(r) if isinstance(r, str) else r for r in (regexes or ()))
        return cls(contexts=tuple(as_labels(contexts)),
                   paths=tuple(as_labels(paths)),
                   regexes=compiled)

    @classmethod
    def coerce(cls, value: Any) -> "PathRule":
        if isinstance(value, PathRule):
            return value
        if isinstance(value, Mapping):
            return cls.create(value.get("contexts"), value.get("paths"), value.get("regexes"))
        raise TypeError(f"Cannot build a path rule from {type(value).__name__}: {value!r}")

    @property
    def dynamic_contexts(self) -> List[str]:
        return [label for label in self.contexts if _PLACEHOLDER.search(label)]


@dataclass
class PathContexts:
    """Labels to add and to remove for one path."""
    add: List[str] = field(default_factory=list)
    remove: List[str] = field(default_factory=list)


def _fill_placeholders(label: str, match: re.Match) -> str:
    def group(placeholder: re.Match) -> str:
        try:
            return match.group(int(placeholder.group(1))) or ""
        except IndexError:
            return ""
    return _PLACEHOLDER.sub(group, label)


def _dynamic_label_pattern(label: str) -> re.Pattern:
    parts = _PLACEHOLDER.split(label)
    # split() interleaves literal text with group numbers
    literal = [re.escape(part) for part in parts[::2]]
    return re.compile(".+?".join(literal))


# =============================================================================
# Context engine
# =============================================================================

class ContextEngine:
    """
    Active context, previous context and path rules of one engine.

    Every mutating call remembers the context it replaced, so
    :meth:`revert_context` toggles between the last two contexts.
    """

    def __init__(self, default_label: str):
        self.default_label = default_label
        self._context: List[str] = [default_label]
        self._previous: List[str] = [default_label]
        self._path_rules: List[PathRule] = []

    # ── Visibility ────────────────────────────────────────────────

    def is_default(self, labels: Sequence[str]) -> bool:
        return len(labels) == 1 and labels[0] == self.default_label

    def in_context(self, scope: Scope, labels: Sequence[str]) -> bool:
        """Would an action with *scope* be visible if *labels* were active?"""
        if self.is_default(labels) or scope.is_universal(self.default_label):
            return True
        if labels and labels[0] == self.default_label:
            # a leading default label is not part of the hierarchy
            labels = labels[1:]
        if scope.path and scope.path == tuple(labels):
            return True
        return scope_satisfied(scope, labels)

    def is_visible(self, action: Any) -> bool:
        """Is *action* (anything with a ``scope``) visible in the active context?"""
        return self.in_context(action.scope, self._context)

    # ── Active context ────────────────────────────────────────────

    @property
    def context(self) -> List[str]:
        return list(self._context)

    @property
    def previous_context(self) -> List[str]:
        return list(self._previous)

    def set_context(self, labels: Any) -> List[str]:
        new_context = as_labels(labels) or [self.default_label]
        self._previous = self._context
        self._context = new_context
        logger.debug("Context set to %s", self._context)
        return self.context

    def add_context(self, labels: Any) -> List[str]:
        """
        Append the labels not present yet.

        Labels added to the bare default context replace the default label.
        """
        new_context = [] if self.is_default(self._context) else list(self._context)
        for label in as_labels(labels):
            if label not in new_context:
                new_context.append(label)
        self._previous = self._context
        self._context = new_context or [self.default_label]
        logger.debug("Context extended to %s", self._context)
        return self.context

    def remove_context(self, labels: Any) -> List[str]:
        """Drop the labels; an emptied context falls back to the default."""
        to_remove = set(as_labels(labels))
        new_context = [label for label in self._context if label not in to_remove]
        self._previous = self._context
        self._context = new_context or [self.default_label]
        logger.debug("Context reduced to %s", self._context)
        return self.context

    def revert_context(self) -> List[str]:
        return self.set_context(self._previous)

    def reset_context_to_default(self) -> List[str]:
        return self.set_context([self.default_label])

    def restore(self, context: Any = None, previous: Any = None) -> None:
        """Install saved contexts without touching the previous-context slot logic."""
        if context:
            self._context = as_labels(context)
        if previous:
            self._previous = as_labels(previous)

    # ── Path rules ────────────────────────────────────────────────

    @property
    def path_rules(self) -> List[PathRule]:
        return list(self._path_rules)

    def add_path_rules(self, rules: Iterable[Any]) -> List[PathRule]:
        for rule in rules:
            rule = PathRule.coerce(rule)
            if rule not in self._path_rules:
                self._path_rules.append(rule)
        return self.path_rules

    def remove_path_rules(self, rules: Iterable[Any]) -> List[PathRule]:
        doomed = [PathRule.coerce(rule) for rule in rules]
        self._path_rules = [rule for rule in self._path_rules if rule not in doomed]
        return self.path_rules

    def resolve_path_contexts(self, path: str) -> PathContexts:
        """
        Labels each rule contributes for *path*.

        Per rule, the regexes are tried first (the first match wins and
        fills the placeholders), then the literal paths. A rule that
        matches neither sends its labels to ``remove``.
        """
        result = PathContexts()
        for rule in self._path_rules:
            added = False
            for regex in rule.regexes:
                match = regex.search(path)
                if match:
                    result.add.extend(_fill_placeholders(label, match) for label in rule.contexts)
                    added = True
                    break
            if not added and path in rule.paths:
                result.add.extend(rule.contexts)
                added = True
            if not added:
                result.remove.extend(rule.contexts)
        logger.debug("Path %r resolves to add=%s remove=%s", path, result.add, result.remove)
        return result

    def stale_dynamic_contexts(self) -> List[str]:
        """Active labels produced by a placeholder label of any rule."""
        stale: List[str] = []
        for rule in self._path_rules:
            for label in rule.dynamic_contexts:
                pattern = _dynamic_label_pattern(label)
                for active in self._context:
                    if pattern.fullmatch(active) and active not in stale:
                        stale.append(active)
        return stale
