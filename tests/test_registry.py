"""
Tests for wishmatch.core.registry — ids, replacement, handlers and removal.
"""

import pytest

from wishmatch.core.context import Scope
from wishmatch.core.recency import RecencyIndex
from wishmatch.core.registry import (
    INVOCATIONS_BY_FRAGMENT,
    TOTAL_INVOCATIONS,
    Action,
    ActionRegistry,
    NavigateDescriptor,
)
from wishmatch.exceptions import InvalidMagicWordError


def _noop(action, fragment):
    return None


@pytest.fixture
def recency():
    return RecencyIndex()


@pytest.fixture
def navigations():
    return []


@pytest.fixture
def registry(recency, navigations):
    return ActionRegistry(
        recency,
        default_label="universe",
        navigator=lambda target, new_surface: navigations.append((target, new_surface)),
    )


# =============================================================================
# Registration
# =============================================================================

class TestRegister:

    def test_generated_ids_count_up(self, registry):
        first = registry.register({"triggers": "one", "handler": _noop})
        second = registry.register({"triggers": "two", "handler": _noop})
        assert (first.id, second.id) == ("g-0", "g-1")
        assert registry.next_id == 2

    def test_custom_id_prefix(self, recency):
        registry = ActionRegistry(recency, default_label="universe", id_prefix="cmd-")
        assert registry.register({"triggers": "x"}).id == "cmd-0"

    def test_explicit_id_does_not_consume_counter(self, registry):
        assert registry.register({"id": "settings", "triggers": "s"}).id == "settings"
        assert registry.next_id == 0

    def test_same_id_replaces_in_place(self, registry):
        registry.register({"id": "a", "triggers": "first"})
        registry.register({"id": "b", "triggers": "other"})
        replacement = registry.register({"id": "a", "triggers": "second"})
        assert registry.actions() == [replacement, registry.get("b")]
        assert replacement.triggers == ["second"]

    def test_triggers_normalized_to_list(self, registry):
        assert registry.register({"triggers": "solo"}).triggers == ["solo"]
        assert registry.register({"triggers": [1, 2, "hey3"]}).triggers == ["1", "2", "hey3"]
        assert registry.register({}).triggers == []

    def test_object_trigger_raises(self, registry):
        with pytest.raises(InvalidMagicWordError):
            registry.register({"triggers": [{"word": "nope"}]})
        assert len(registry) == 0

    def test_spec_must_be_mapping(self, registry):
        with pytest.raises(TypeError):
            registry.register("just a string")

    def test_default_scope_is_universal(self, registry):
        action = registry.register({"triggers": "x"})
        assert action.scope == Scope(any=("universe",))

    def test_counters_start_at_zero(self, registry):
        action = registry.register({"triggers": "x", "payload": {"icon": "star"}})
        assert action.payload == {"icon": "star", TOTAL_INVOCATIONS: 0, INVOCATIONS_BY_FRAGMENT: {}}

    def test_register_batch_keeps_order(self, registry):
        actions = registry.register_batch([{"triggers": "a"}, {"triggers": "b"}])
        assert [a.id for a in actions] == ["g-0", "g-1"]


# =============================================================================
# Handlers
# =============================================================================

class TestHandlers:

    def test_callable_handler_kept(self, registry):
        action = registry.register({"triggers": "x", "handler": _noop})
        assert action.handler is _noop
        assert action.navigation is None

    def test_target_string_becomes_navigation(self, registry, navigations):
        action = registry.register({"triggers": "x", "handler": "https://example.org"})
        assert action.navigation == NavigateDescriptor("https://example.org")
        action.handler(action, "x")
        assert navigations == [("https://example.org", False)]

    def test_descriptor_mapping(self, registry, navigations):
        action = registry.register({
            "triggers": "x",
            "handler": {"target": "app://docs", "open_in_new_surface": True},
        })
        action.handler(action, None)
        assert navigations == [("app://docs", True)]

    def test_unusable_handler_ignored(self, registry):
        action = registry.register({"triggers": "x", "handler": {"nothing": "here"}})
        assert action.handler is None

    def test_to_dict_emits_navigation(self, registry):
        action = registry.register({"id": "d", "triggers": "x", "handler": "app://d"})
        data = action.to_dict()
        assert data["handler"] == {"target": "app://d", "open_in_new_surface": False}
        assert data["scope"] == {"any": ["universe"]}


# =============================================================================
# Merge
# =============================================================================

class TestMergeBatch:

    def test_inherits_registered_handler(self, registry):
        registry.register({"id": "a", "triggers": "old", "handler": _noop})
        merged = registry.merge_batch({"a": {"triggers": "new"}})
        assert merged[0].handler is _noop
        assert registry.get("a").triggers == ["new"]

    def test_skips_spec_without_any_handler(self, registry):
        assert registry.merge_batch({"ghost": {"triggers": "boo"}}) == []
        assert "ghost" not in registry

    def test_keeps_saved_counters(self, registry):
        registry.register({"id": "a", "triggers": "x", "handler": _noop})
        registry.merge_batch({"a": {
            "triggers": "x",
            "payload": {TOTAL_INVOCATIONS: 3, INVOCATIONS_BY_FRAGMENT: {"x": 3}},
        }})
        assert registry.get("a").total_invocations == 3


# =============================================================================
# Removal & lookup
# =============================================================================

class TestRemoval:

    def test_deregister_purges_recency(self, registry, recency):
        action = registry.register({"triggers": "x"})
        recency.record_invocation("x", action.id)
        assert registry.deregister(action) is action
        assert recency.lookup("x") == []

    def test_deregister_by_id(self, registry):
        registry.register({"id": "a", "triggers": "x"})
        assert registry.deregister("a").id == "a"
        assert len(registry) == 0

    def test_deregister_absent_returns_none(self, registry):
        assert registry.deregister("missing") is None
        assert registry.deregister(None) is None

    def test_is_registered_checks_identity(self, registry):
        old = registry.register({"id": "a", "triggers": "x"})
        registry.register({"id": "a", "triggers": "x"})
        assert not registry.is_registered(old)

    def test_get_many_keeps_order(self, registry):
        registry.register_batch([{"id": "a", "triggers": "x"}, {"id": "b", "triggers": "y"}])
        found = registry.get_many(["b", "zzz", "a"])
        assert [a.id if a else None for a in found] == ["b", None, "a"]

    def test_replace_all_copies_actions(self, registry):
        original = Action(id="a", triggers=["x"], scope=Scope(any=("universe",)))
        registry.replace_all({"a": original, "b": {"triggers": "y"}})
        assert registry.get("a") is not original
        assert [a.id for a in registry.actions()] == ["a", "b"]

    def test_action_copy_detaches_payload(self):
        action = Action(id="a", triggers=["x"], scope=Scope(), payload={"tags": ["t"]})
        clone = action.copy()
        clone.payload["tags"].append("u")
        assert action.payload == {"tags": ["t"]}
