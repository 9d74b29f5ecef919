"""Tests for ObservableDict and ObservableList nodes and the write path."""

import threading

import pytest

from bindable import ObservableDict, ObservableList, wrap
import bindable.observable as _obs_mod


class TestWrapping:
    def test_nested_containers_are_nodes(self):
        model = wrap({"a": 1, "b": {"c": {"d": 2}}, "items": [{"n": 1}, [3]]})
        assert isinstance(model.root, ObservableDict)
        assert isinstance(model["b"], ObservableDict)
        assert isinstance(model["b"]["c"], ObservableDict)
        assert isinstance(model["items"], ObservableList)
        assert isinstance(model["items"][0], ObservableDict)
        assert isinstance(model["items"][1], ObservableList)

    def test_chains(self):
        model = wrap({"b": {"c": {}}, "items": [{"n": 1}]})
        assert model.root.chain == ""
        assert model["b"].chain == "b"
        assert model["b"]["c"].chain == "b.c"
        assert model["items"][0].chain == "items.0"

    def test_primitives_stored_unwrapped(self):
        model = wrap({"n": 1, "s": "x", "none": None, "t": (1, 2)})
        assert model["n"] == 1
        assert model["s"] == "x"
        assert model["none"] is None
        assert model["t"] == (1, 2)

    def test_containers_inside_tuples_stay_plain(self, transport):
        model = wrap({"t": ({"a": 1}, [2])}, transport=transport)
        inner = model["t"][0]
        assert type(inner) is dict
        inner["a"] = 5
        assert transport.published == []

    def test_empty_containers_are_wrapped(self):
        model = wrap({"d": {}, "l": []})
        assert isinstance(model["d"], ObservableDict)
        assert isinstance(model["l"], ObservableList)

    def test_input_is_not_mutated(self):
        data = {"b": {"c": 1}}
        model = wrap(data)
        model["b"]["c"] = 2
        assert data == {"b": {"c": 1}}
        assert type(data["b"]) is dict

    def test_write_wraps_containers(self):
        model = wrap({})
        model["x"] = {"y": [1, {"z": 2}]}
        assert isinstance(model["x"]["y"], ObservableList)
        assert model["x"]["y"][1].chain == "x.y.1"

    def test_assigning_a_node_copies_it(self, transport):
        model = wrap({"b": {"k": 1}}, transport=transport)
        model["c"] = model["b"]
        assert model["c"] is not model["b"]
        assert model["c"].chain == "c"
        transport.published.clear()
        model["c"]["k"] = 2
        assert transport.published == ["*", "c", "c.k"]
        assert model["b"]["k"] == 1

    def test_nodes_are_not_callable(self):
        model = wrap({"b": {}})
        with pytest.raises(TypeError):
            model["b"]()
        assert not callable(model["b"])


class TestObservableDict:
    def test_basic_operations(self):
        d = wrap({"a": 1, "b": 2}).root
        assert d["a"] == 1
        assert d.get("c", 99) == 99
        assert "a" in d
        assert len(d) == 2
        assert set(d) == {"a", "b"}
        assert bool(d) is True
        assert set(d.keys()) == {"a", "b"}
        assert set(d.values()) == {1, 2}
        assert set(d.items()) == {("a", 1), ("b", 2)}

    def test_equality_with_plain_values(self):
        model = wrap({"a": 1, "b": {"c": [1, 2]}})
        assert model.root == {"a": 1, "b": {"c": [1, 2]}}
        assert {"c": [1, 2]} == model["b"]
        assert model.root != {"a": 2}

    def test_write_notifies_child_chain(self, transport):
        model = wrap({"a": {"b": 1}}, transport=transport)
        model["a"]["b"] = 2
        assert model["a"]["b"] == 2
        assert transport.published == ["*", "a", "a.b"]

    def test_set_returns_true(self, transport):
        model = wrap({"a": {}}, transport=transport)
        assert model["a"].set("b", 1) is True
        assert transport.published == ["*", "a", "a.b"]

    def test_update_and_setdefault_notify(self, transport):
        model = wrap({"a": 1}, transport=transport)
        model.root.update({"b": 2}, c=3)
        assert transport.published == ["*", "b", "*", "c"]
        transport.published.clear()
        assert model.root.setdefault("a", 99) == 1
        assert transport.published == []
        assert model.root.setdefault("d", 4) == 4
        assert transport.published == ["*", "d"]

    def test_deletion_is_silent(self, transport):
        model = wrap({"a": 1, "b": 2, "c": 3, "d": 4}, transport=transport)
        del model["a"]
        assert model.root.pop("b") == 2
        assert model.root.delete("c") is True
        assert model.root.delete("missing") is False
        model.root.popitem()
        assert transport.published == []
        model.root.clear()
        assert len(model) == 0
        assert transport.published == []

    def test_prevent_extensions(self):
        model = wrap({"a": 1})
        assert model.root.is_extensible()
        model.root.prevent_extensions()
        assert not model.root.is_extensible()
        model["a"] = 2  # existing keys stay writable
        assert model["a"] == 2
        with pytest.raises(TypeError):
            model["b"] = 1
        assert "b" not in model

    def test_define_property_does_not_notify(self, transport):
        model = wrap({}, transport=transport)
        model.root.define_property("a", {"b": 1})
        assert transport.published == []
        assert isinstance(model["a"], ObservableDict)
        assert model["a"].chain == "a"

    def test_define_property_setter_composes_with_notification(self, transport):
        model = wrap({}, transport=transport)
        hook_calls = []
        model.root.define_property("a", 1, setter=lambda node, key, value: hook_calls.append((key, value)))
        model["a"] = 2
        assert hook_calls == [("a", 2)]
        assert model["a"] == 2
        assert transport.published == ["*", "a"]

    def test_deleting_drops_setter(self):
        model = wrap({})
        hook_calls = []
        model.root.define_property("a", 1, setter=lambda node, key, value: hook_calls.append(value))
        del model["a"]
        model["a"] = 3
        assert hook_calls == []

    def test_to_plain(self):
        model = wrap({"a": {"b": [1, {"c": 2}]}})
        plain = model.root.to_plain()
        assert plain == {"a": {"b": [1, {"c": 2}]}}
        assert type(plain["a"]["b"][1]) is dict

    def test_repr(self):
        assert "ObservableDict({'a': 1})" in repr(wrap({"a": 1}).root)


class TestObservableList:
    def test_basic_operations(self):
        lst = wrap({"l": [1, 2, 3]})["l"]
        assert len(lst) == 3
        assert lst[0] == 1
        assert lst[-1] == 3
        assert list(lst) == [1, 2, 3]
        assert 2 in lst
        assert bool(lst) is True
        assert list(lst.keys()) == [0, 1, 2]
        assert lst == [1, 2, 3]

    def test_get_by_segment(self):
        lst = wrap({"l": ["a", "b"]})["l"]
        assert lst.get("1") == "b"
        assert lst.get(0) == "a"
        assert lst.get("2") is None
        assert lst.get("x", "dflt") == "dflt"
        assert lst.get("-1") is None

    def test_index_assignment_notifies_element(self, transport):
        model = wrap({"l": [1, 2, 3]}, transport=transport)
        model["l"][1] = 20
        assert transport.published == ["*", "l", "l.1"]
        transport.published.clear()
        model["l"][-1] = 30
        assert transport.published == ["*", "l", "l.2"]
        assert model["l"] == [1, 20, 30]

    def test_index_assignment_out_of_range(self):
        model = wrap({"l": [1]})
        with pytest.raises(IndexError):
            model["l"][5] = 1

    def test_set_appends_at_length(self, transport):
        model = wrap({"l": [1]}, transport=transport)
        assert model["l"].set("1", {"x": 1}) is True
        assert model["l"][1].chain == "l.1"
        assert transport.published == ["*", "l", "l.1"]
        assert model["l"].set("5", 1) is False
        assert model["l"].set("x", 1) is False

    def test_to_plain(self):
        model = wrap({"l": [{"a": 1}, [2]]})
        assert model["l"].to_plain() == [{"a": 1}, [2]]
        assert type(model["l"].to_plain()[0]) is dict


class TestAutoMarshal:
    """Item assignment auto-marshals from foreign threads once a scheduler is set."""

    def test_owner_thread_is_synchronous(self):
        calls = []
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        _obs_mod._scheduler = lambda f: (calls.append(f), f())
        _obs_mod._scheduler_thread = threading.current_thread()
        try:
            model = wrap({"a": 0})
            model["a"] = 42
            assert model["a"] == 42
            assert calls == []
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread

    def test_background_thread_marshals(self):
        calls = []
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        _obs_mod._scheduler = lambda f: (calls.append(f), f())
        _obs_mod._scheduler_thread = threading.current_thread()
        try:
            model = wrap({"a": 0})
            done = threading.Event()

            def bg():
                model["a"] = 99
                done.set()

            threading.Thread(target=bg).start()
            done.wait(timeout=2)
            assert len(calls) == 1
            assert model["a"] == 99
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread

    def test_deferred_writes_keep_order(self):
        """Chain writes, appends and list operations queue in call order."""
        pending = []
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        _obs_mod._scheduler = pending.append
        _obs_mod._scheduler_thread = threading.current_thread()
        try:
            model = wrap({"items": [0]})
            seen = []
            model.on_change("items", lambda m: seen.append(threading.current_thread()))

            def bg():
                model.set_chain_value("items.0", "a")
                model.set_chain_value("items.1", "b")
                model["items"].push("c")

            t = threading.Thread(target=bg)
            t.start()
            t.join(timeout=2)

            assert len(pending) == 3
            assert model.to_object("items") == [0]
            assert seen == []

            for fn in pending:
                fn()
            assert model.to_object("items") == ["a", "b", "c"]
            assert seen == [threading.current_thread()] * 3
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread

    def test_blocking_scheduler_returns_results(self):
        calls = []
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        _obs_mod._scheduler = lambda f: (calls.append(f), f())[1]
        _obs_mod._scheduler_thread = threading.current_thread()
        try:
            model = wrap({"a": 1, "items": []})
            results = {}

            def bg():
                results["push"] = model["items"].push("x", "y")
                results["pop"] = model.pop("a")
                model.define_property("b", 2)

            t = threading.Thread(target=bg)
            t.start()
            t.join(timeout=2)

            assert len(calls) == 3
            assert results == {"push": 2, "pop": 1}
            assert model.to_object() == {"items": ["x", "y"], "b": 2}
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread

    def test_no_scheduler_is_direct(self):
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        _obs_mod._scheduler = None
        _obs_mod._scheduler_thread = None
        try:
            model = wrap({"a": 0})
            done = threading.Event()

            def bg():
                model["a"] = 42
                done.set()

            threading.Thread(target=bg).start()
            done.wait(timeout=2)
            assert model["a"] == 42
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread

    def test_set_scheduler(self):
        old_sched, old_thread = _obs_mod._scheduler, _obs_mod._scheduler_thread
        try:
            _obs_mod.set_scheduler(lambda f: f())
            assert _obs_mod._scheduler_thread is threading.current_thread()
        finally:
            _obs_mod._scheduler = old_sched
            _obs_mod._scheduler_thread = old_thread
