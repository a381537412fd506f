"""
Tests for query ordering and invocation (wishmatch.core.engine through the facade).
"""

import pytest

from wishmatch.core.context import Scope
from wishmatch.core.matcher import MatchRank
from wishmatch.exceptions import InvalidMagicWordError


# =============================================================================
# Tier ordering
# =============================================================================

class TestQuery:

    def test_titles(self, engine, register_blank):
        register_blank("Lord of the Flies")
        register_blank("Pirates of the Carribean")
        register_blank("Lord of the Rings")

        assert len(engine.query("of the")) == 3
        assert len(engine.query("Lord of the")) == 2
        assert len(engine.query("Ring")) == 1

    def test_multiple_triggers(self, engine, register_blank):
        media = register_blank(["Book", "Music", "Movie"])
        animals = register_blank(["Cat", "Dog", "Goat"])

        for fragment in ("b", "m", "movie"):
            assert engine.query(fragment) == [media]
        for fragment in ("cat", "d", "t"):
            assert engine.query(fragment) == [animals]
        assert engine.query("o") == [media, animals]

    def test_tiers_beat_registration_order(self, engine, register_blank):
        match = register_blank("The Tail of Forty Cities")
        acronym = register_blank("The Tail of Two Cities")
        contains = register_blank("The ttotc container")
        equal = register_blank("tTOtc")

        assert engine.query("ttotc") == [equal, contains, acronym, match]

        engine.invoke(match, "ttotc")
        assert engine.query("ttotc") == [match, equal, contains, acronym]

    def test_starts_with_before_word_start(self, engine, register_blank):
        register_blank("Hello World")
        life = register_blank("I like life")
        fish = register_blank("I like fish")
        first = register_blank("Fish like me")

        assert engine.query("f") == [first, fish, life]

    def test_numeric_triggers_and_fragment(self, engine, register_blank):
        numbers = register_blank([1, 2, "hey3"])
        assert engine.query(1) == [numbers]

    def test_no_fragment_lists_everything(self, engine, register_blank):
        actions = [register_blank("a"), register_blank("b")]
        assert engine.query() == actions

    def test_object_fragment_raises(self, engine, register_blank):
        register_blank("x")
        with pytest.raises(InvalidMagicWordError):
            engine.query({"x": 1})

    def test_rank_breakdown(self, engine, register_blank):
        hello = register_blank("Hello")
        shell = register_blank("Shell")
        engine.invoke(shell, "hel")
        assert engine.rank_breakdown("hel") == [(shell, None), (hello, MatchRank.STARTS_WITH)]


# =============================================================================
# Recency (king of the hill)
# =============================================================================

class TestRecencyOrdering:

    def test_mertz_family(self, engine, register_blank):
        fred = register_blank("Fred Mertz")
        ethel = register_blank("Ethel Mertz")
        lucy = register_blank("Lucy Mertz")
        assert engine.query("mertz") == [fred, ethel, lucy]

        engine.invoke(ethel, "mertz")
        assert engine.query("mertz") == [ethel, fred, lucy]

        # A newcomer has to be picked twice before it takes the lead.
        engine.invoke(lucy, "mertz")
        assert engine.query("mertz") == [ethel, lucy, fred]
        engine.invoke(lucy, "mertz")
        assert engine.query("mertz") == [lucy, ethel, fred]

        engine.deregister(lucy)
        engine.invoke(fred, "mertz")
        assert engine.query("mertz") == [ethel, fred]

    def test_fragment_case_is_ignored(self, engine, register_blank):
        fred = register_blank("Fred Mertz")
        ethel = register_blank("Ethel Mertz")
        engine.invoke(ethel, "MERTZ")
        assert engine.query("mertz") == [ethel, fred]

    def test_king_invoke_is_a_no_op_on_order(self, engine, register_blank):
        fred = register_blank("Fred")
        ethel = register_blank("Frida")
        engine.invoke(ethel, "fr")
        engine.invoke(ethel, "fr")

        assert engine.query("fr") == [ethel, fred]
        assert ethel.total_invocations == 2
        assert ethel.invocations_by_fragment == {"fr": 2}

    def test_recency_is_per_exact_fragment(self, engine, register_blank):
        fred = register_blank("Fred")
        frida = register_blank("Frida")
        engine.invoke(frida, "fr")
        assert engine.query("f") == [fred, frida]

    def test_hidden_recent_action_is_skipped(self, engine, register_blank):
        open_file = register_blank("Open file", scope="editor")
        engine.set_context("editor")
        engine.invoke(open_file, "open")
        engine.set_context("viewer")
        assert engine.query("open") == []


# =============================================================================
# Invocation
# =============================================================================

class TestInvoke:

    def test_handler_receives_action_and_fragment(self, engine):
        calls = []
        action = engine.register({"triggers": "wish", "handler": lambda a, f: calls.append((a, f))})
        assert engine.invoke(action, "Wi") is action
        assert calls == [(action, "wi")]

    def test_invoke_by_id(self, engine):
        calls = []
        engine.register({"id": "w", "triggers": "wish", "handler": lambda a, f: calls.append(f)})
        assert engine.invoke("w").id == "w"
        assert calls == [None]

    def test_falls_back_to_best_match(self, engine, register_blank):
        register_blank("Cat")
        dog = register_blank("Dog")
        assert engine.invoke(None, "do") is dog
        assert engine.invoke("no-such-id", "do") is dog

    def test_nothing_to_invoke(self, engine, register_blank):
        register_blank("Cat")
        assert engine.invoke(None, "zebra") is None
        assert engine.invoke() is not None

    def test_deregistered_action_is_refused(self, engine):
        calls = []
        action = engine.register({"triggers": "wish", "handler": lambda a, f: calls.append(1)})
        engine.invoke(action)
        engine.deregister(action)
        assert engine.invoke(action) is None
        assert calls == [1]

    def test_action_without_handler_is_refused(self, engine):
        action = engine.register({"triggers": "wish"})
        assert engine.invoke(action, "wish") is None
        assert action.total_invocations == 0

    def test_navigation_handler(self, engine, navigations):
        docs = engine.register({
            "triggers": "Docs",
            "handler": {"target": "https://example.org/docs", "open_in_new_surface": True},
        })
        engine.invoke(docs, "docs")
        assert navigations == [("https://example.org/docs", True)]

    def test_handler_may_reenter_engine(self, engine):
        registered = []

        def spawn(action, fragment):
            registered.append(engine.register({"triggers": "child", "handler": spawn}))
            engine.deregister(action)

        parent = engine.register({"triggers": "parent", "handler": spawn})
        assert engine.invoke(parent, "par") is parent
        assert engine.query("par") == []
        assert engine.query("child") == registered
        assert parent.total_invocations == 1


# =============================================================================
# Context visibility
# =============================================================================

class TestContextVisibility:

    def test_universal_action_and_context_switch(self, engine):
        calls = []
        hello = engine.register({"triggers": "Hello", "handler": lambda a, f: calls.append(1)})
        assert engine.context() == ["universe"]

        engine.set_context("newContext")
        assert len(engine.query("Hello")) == 1
        engine.invoke(hello)
        engine.revert_context()
        engine.invoke(hello)
        assert len(calls) == 2

        hello.scope = Scope(any=("differentContext",))
        engine.set_context("otherContext")
        assert engine.invoke(hello) is None
        assert engine.query("Hello") == []
        assert len(calls) == 2

    def test_hierarchical_contexts(self, engine):
        grandparents, parents, children = 2, 3, 4
        executions = {}

        def count(action, fragment):
            executions[action.id] += 1

        def register(path):
            action_id = "".join(path)
            executions[action_id] = 0
            engine.register({"id": action_id, "triggers": action_id,
                             "scope": list(path), "handler": count})

        def invoke_all(path):
            engine.set_context(list(path))
            for action in engine.query(""):
                engine.invoke(action, "")

        for i in range(grandparents):
            register([f"grandparent{i}"])
            for j in range(parents):
                register([f"grandparent{i}", f"parent{j}"])
                for k in range(children):
                    register([f"grandparent{i}", f"parent{j}", f"child{k}"])

        for i in range(grandparents):
            invoke_all([f"grandparent{i}"])
            for j in range(parents):
                invoke_all([f"grandparent{i}", f"parent{j}"])
                for k in range(children):
                    invoke_all([f"grandparent{i}", f"parent{j}", f"child{k}"])

        for i in range(grandparents):
            assert executions[f"grandparent{i}"] == parents * children + 1 + parents
            for j in range(parents):
                assert executions[f"grandparent{i}parent{j}"] == children + 1
                for k in range(children):
                    assert executions[f"grandparent{i}parent{j}child{k}"] == 1

    def test_sibling_context_hides_action(self, engine, register_blank):
        register_blank("Edit", scope=["settings", "users"])
        engine.set_context(["settings", "billing"])
        assert engine.query("edit") == []
        engine.set_context(["settings", "users", "edit"])
        assert len(engine.query("edit")) == 1
