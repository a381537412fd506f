"""
wishmatch Action Registry

Owns the registered actions ("wishes"), assigns their ids and keeps the
recency index free of ids that no longer exist.

Handlers come in two flavours: a plain callable ``handler(action, fragment)``
or a :class:`NavigateDescriptor` (also accepted as a mapping or a bare
target string), which the registry turns into a callable that forwards to
the engine's navigator.
"""

import copy
import logging
import webbrowser
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from wishmatch.core.context import Scope
from wishmatch.core.matcher import normalize_word
from wishmatch.core.recency import RecencyIndex

logger = logging.getLogger(__name__)

TOTAL_INVOCATIONS = "total_invocations"
INVOCATIONS_BY_FRAGMENT = "invocations_by_fragment"

Handler = Callable[["Action", Optional[str]], Any]
Navigator = Callable[[str, bool], Any]


def browser_navigator(target: str, new_surface: bool) -> None:
    """Default navigator: open *target* with the system web browser."""
    webbrowser.open(target, new=2 if new_surface else 0)


# =============================================================================
# Data Models
# =============================================================================

@dataclass(frozen=True)
class NavigateDescriptor:
    """Declarative handler: navigate to *target* when the action is invoked."""
    target: str
    open_in_new_surface: bool = False

    @classmethod
    def coerce(cls, value: Any) -> Optional["NavigateDescriptor"]:
        if isinstance(value, NavigateDescriptor):
            return value
        if isinstance(value, str):
            return cls(target=value)
        if isinstance(value, Mapping) and value.get("target"):
            return cls(
                target=str(value["target"]),
                open_in_new_surface=bool(value.get("open_in_new_surface", False)),
            )
        return None

    def to_dict(self) -> dict:
        return {"target": self.target, "open_in_new_surface": self.open_in_new_surface}


@dataclass(eq=False)
class Action:
    """A registered action ("wish").

    Compared by identity: two registrations with equal fields are still
    two different actions.
    """
    id: str
    triggers: List[str]
    scope: Scope
    payload: Dict[str, Any] = field(default_factory=dict)
    handler: Optional[Handler] = None
    navigation: Optional[NavigateDescriptor] = None

    @property
    def primary_trigger(self) -> str:
        return self.triggers[0] if self.triggers else ""

    @property
    def total_invocations(self) -> int:
        return self.payload.get(TOTAL_INVOCATIONS, 0)

    @property
    def invocations_by_fragment(self) -> Dict[str, int]:
        return self.payload.setdefault(INVOCATIONS_BY_FRAGMENT, {})

    def record_invocation(self, fragment: Optional[str]) -> None:
        self.payload[TOTAL_INVOCATIONS] = self.total_invocations + 1
        if fragment is not None:
            by_fragment = self.invocations_by_fragment
            by_fragment[fragment] = by_fragment.get(fragment, 0) + 1

    def copy(self) -> "Action":
        """Detached copy; the payload is deep-copied, the handler shared."""
        return Action(
            id=self.id,
            triggers=list(self.triggers),
            scope=self.scope,
            payload=copy.deepcopy(self.payload),
            handler=self.handler,
            navigation=self.navigation,
        )

    def to_dict(self) -> dict:
        """Serializable form (callable handlers are dropped)."""
        data = {
            "id": self.id,
            "triggers": list(self.triggers),
            "scope": self.scope.to_dict(),
            "payload": copy.deepcopy(self.payload),
        }
        if self.navigation is not None:
            data["handler"] = self.navigation.to_dict()
        return data

    def __repr__(self) -> str:
        return f"Action(id={self.id}, triggers={self.triggers})"


def _field(spec: Any, name: str, default: Any = None) -> Any:
    if isinstance(spec, Action):
        return getattr(spec, name, default)
    if isinstance(spec, Mapping):
        return spec.get(name, default)
    raise TypeError(f"Action spec must be a mapping or an Action, got {type(spec).__name__}")


def _normalize_triggers(triggers: Any) -> List[str]:
    if triggers is None:
        return []
    if isinstance(triggers, (list, tuple)):
        return [normalize_word(trigger) for trigger in triggers]
    return [normalize_word(triggers)]


# =============================================================================
# Registry
# =============================================================================

class ActionRegistry:
    """
    Id-keyed table of actions in registration order.

    Args:
        recency: Recency index shared with the match coordinator; purged
            on deregistration.
        default_label: Label of the universal context (default scope).
        id_prefix: Prefix of generated ids (``g-0``, ``g-1``, ...).
        navigator: Sink for navigation handlers.
    """

    def __init__(
        self,
        recency: RecencyIndex,
        default_label: str,
        id_prefix: str = "g-",
        navigator: Navigator | None = None,
    ):
        self._actions: Dict[str, Action] = {}
        self._recency = recency
        self._default_label = default_label
        self._id_prefix = id_prefix
        self._navigator = navigator or browser_navigator
        self.next_id = 0

    # ── Building ──────────────────────────────────────────────────

    def _resolve_handler(self, handler: Any):
        """Return ``(callable_or_None, navigation_descriptor_or_None)``."""
        if handler is None:
            return None, None
        if callable(handler):
            return handler, None
        descriptor = NavigateDescriptor.coerce(handler)
        if descriptor is None:
            logger.warning("Ignoring unusable handler %r", handler)
            return None, None
        navigator = self._navigator

        def navigate(action: Action, fragment: Optional[str]) -> None:
            navigator(descriptor.target, descriptor.open_in_new_surface)

        return navigate, descriptor

    def _build(self, spec: Any, action_id: str, keep_counters: bool) -> Action:
        if isinstance(spec, Action):
            handler, navigation = spec.handler, spec.navigation
        else:
            handler, navigation = self._resolve_handler(_field(spec, "handler"))
        payload = _field(spec, "payload")
        if payload is None:
            payload = {}
        action = Action(
            id=action_id,
            triggers=_normalize_triggers(_field(spec, "triggers")),
            scope=Scope.coerce(_field(spec, "scope"), self._default_label),
            payload=payload,
            handler=handler,
            navigation=navigation,
        )
        if not keep_counters or TOTAL_INVOCATIONS not in payload:
            payload[TOTAL_INVOCATIONS] = 0
            payload[INVOCATIONS_BY_FRAGMENT] = {}
        return action

    def _assign_id(self, spec: Any) -> str:
        action_id = _field(spec, "id")
        if action_id:
            return str(action_id)
        action_id = f"{self._id_prefix}{self.next_id}"
        self.next_id += 1
        return action_id

    # ── Registration ──────────────────────────────────────────────

    def register(self, spec: Any) -> Action:
        """
        Register one action from a spec mapping or an :class:`Action`.

        An existing action with the same id is replaced wholesale.

        Raises:
            InvalidMagicWordError: a trigger is not a primitive value.
        """
        action = self._build(spec, self._assign_id(spec), keep_counters=False)
        if action.id in self._actions:
            logger.debug("Replacing action '%s'", action.id)
        self._actions[action.id] = action
        logger.debug("Registered '%s' with triggers %s", action.id, action.triggers)
        return action

    def register_batch(self, specs: Iterable[Any]) -> List[Action]:
        return [self.register(spec) for spec in specs]

    def merge_batch(self, specs: Mapping[str, Any]) -> List[Action]:
        """
        Merge id-keyed specs into the registry.

        An incoming spec without a handler inherits the handler of the
        registered action with the same id. Specs that still have no
        handler are skipped and the registered action is left alone.
        """
        merged: List[Action] = []
        for action_id, spec in specs.items():
            action_id = str(action_id)
            action = self._build(spec, action_id, keep_counters=True)
            existing = self._actions.get(action_id)
            if action.handler is None and existing is not None:
                action.handler = existing.handler
                action.navigation = existing.navigation
            if action.handler is None:
                logger.debug("Skipping merge of '%s': no handler", action_id)
                continue
            self._actions[action_id] = action
            merged.append(action)
        return merged

    # ── Removal ───────────────────────────────────────────────────

    def deregister(self, action_or_id: Any) -> Optional[Action]:
        """Remove an action by id or object; ``None`` if it is not registered."""
        action_id = action_or_id.id if isinstance(action_or_id, Action) else action_or_id
        if action_id is None:
            return None
        action = self._actions.pop(str(action_id), None)
        if action is None:
            return None
        self._recency.purge(action.id)
        logger.debug("Deregistered '%s'", action.id)
        return action

    def clear(self) -> None:
        self._actions.clear()
        self.next_id = 0

    def replace_all(self, specs: Mapping[str, Any]) -> None:
        """Install id-keyed specs as the whole table (snapshot restore).

        Counters are kept; actions without a handler are installed too
        and simply cannot be invoked.
        """
        table: Dict[str, Action] = {}
        for action_id, spec in specs.items():
            if isinstance(spec, Action):
                action = spec.copy()
                action.id = str(action_id)
            else:
                action = self._build(spec, str(action_id), keep_counters=True)
            table[action.id] = action
        self._actions = table

    # ── Lookup ────────────────────────────────────────────────────

    def get(self, action_id: Any) -> Optional[Action]:
        if action_id is None:
            return None
        return self._actions.get(str(action_id))

    def get_many(self, action_ids: Iterable[Any]) -> List[Optional[Action]]:
        """Same order as *action_ids*; unknown ids give ``None`` entries."""
        return [self.get(action_id) for action_id in action_ids]

    def is_registered(self, action: Action) -> bool:
        return self._actions.get(action.id) is action

    def actions(self) -> List[Action]:
        return list(self._actions.values())

    def __contains__(self, action_id: Any) -> bool:
        return str(action_id) in self._actions

    def __len__(self) -> int:
        return len(self._actions)
