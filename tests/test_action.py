"""Tests for action batching and transaction context manager."""

import pytest

from stagefx import Store, action, collect, transaction


class TestTransaction:
    def test_batches_updates(self):
        s = Store({"a": 0, "b": 0})
        log = []
        collect(s, lambda snap: log.append((snap.a, snap.b)))
        assert log == [(0, 0)]

        with transaction(s):
            s.root.a = 10
            s.root.b = 20
            assert log == [(0, 0)]
            assert s.canonical.a == 0

        # Should see (10, 20) once, not intermediate (10, 0)
        assert log == [(0, 0), (10, 20)]
        assert s.canonical.a == 10

    def test_nested_transactions(self):
        s = Store({"o": 0})
        log = []
        collect(s, lambda snap: log.append(snap.o))

        with transaction(s):
            s.root.o = 1
            with transaction(s):
                s.root.o = 2
            assert s.has_pending
            s.root.o = 3

        # Only commits after outermost transaction completes
        assert log == [0, 3]

    def test_commits_on_error(self):
        s = Store({"a": 0})
        with pytest.raises(RuntimeError):
            with transaction(s):
                s.root.a = 5
                raise RuntimeError("oops")
        assert s.canonical.a == 5
        assert s.context.batch_depth == 0

    def test_renders_each_unit_once(self):
        s = Store({"a": 0, "b": 0})
        unit = collect(s, lambda snap: (snap.a, snap.b))
        with transaction(s):
            s.root.a = 1
            s.root.b = 1
            assert s.context.get_pending_count() == 0
        assert unit.render_count == 2


class TestAction:
    def test_batches_updates(self):
        s = Store({"a": 0, "b": 0})
        log = []
        collect(s, lambda snap: log.append((snap.a, snap.b)))

        @action(s)
        def swap_in():
            s.root.a = 1
            s.root.b = 2

        swap_in()
        assert log == [(0, 0), (1, 2)]

    def test_nested_actions(self):
        s = Store({"o": 0})
        log = []
        collect(s, lambda snap: log.append(snap.o))

        @action(s)
        def outer():
            s.root.o = 1

            @action(s)
            def inner():
                s.root.o = 2

            inner()
            s.root.o = 3

        outer()
        assert log == [0, 3]

    def test_preserves_return_value(self):
        s = Store()

        @action(s)
        def compute():
            return 42

        assert compute() == 42
