"""Tests for path encoding and path helpers."""

from stagefx.paths import (
    LENGTH,
    WHOLE,
    encode,
    extend,
    overlaps,
    parent,
    to_user_string,
    whole_container,
    within,
)


class TestEncode:
    def test_equal_paths_encode_equal(self):
        assert encode(("todos", 0)) == encode(["todos", 0])

    def test_str_and_int_keys_differ(self):
        assert encode(("todos", 0)) != encode(("todos", "0"))

    def test_dots_and_separators_in_keys_do_not_collide(self):
        assert encode(("a.b",)) != encode(("a", "b"))
        assert encode(("a\x1fb",)) != encode(("a", "b"))

    def test_marker_differs_from_its_name(self):
        assert encode(("todos", LENGTH)) != encode(("todos", "length"))
        assert encode(("tags", WHOLE)) != encode(("tags", "*"))

    def test_other_key_types(self):
        assert encode((1.0,)) != encode((1,))
        assert encode((("a", 1),)) == encode((("a", 1),))
        assert encode((True,)) != encode((1,))

    def test_root_is_empty(self):
        assert encode(()) == ""


class TestDerivedPaths:
    def test_extend(self):
        assert extend(("todos",), 0) == ("todos", 0)
        assert extend((), "counter") == ("counter",)

    def test_whole_container(self):
        assert whole_container(("tags",)) == ("tags", WHOLE)

    def test_parent(self):
        assert parent(("todos", 0, "title")) == ("todos", 0)


class TestOverlaps:
    def test_equal(self):
        assert overlaps(encode(("todos", 0)), encode(("todos", 0)))

    def test_ancestor_and_descendant(self):
        todos = encode(("todos",))
        title = encode(("todos", 0, "title"))
        assert overlaps(todos, title)
        assert overlaps(title, todos)

    def test_siblings(self):
        assert not overlaps(encode(("todos", 0)), encode(("todos", 1)))

    def test_string_prefix_is_not_path_prefix(self):
        assert not overlaps(encode(("todo",)), encode(("todos",)))

    def test_whole_container_is_a_sibling_of_keys(self):
        assert not overlaps(encode(("tags", WHOLE)), encode(("tags", "x")))

    def test_root_overlaps_everything(self):
        assert overlaps(encode(()), encode(("counter",)))


class TestWithin:
    def test_self_and_descendants(self):
        todos = encode(("todos",))
        assert within(todos, todos)
        assert within(encode(("todos", 0, "title")), todos)

    def test_ancestors_and_siblings_are_not_within(self):
        assert not within(encode(("todos",)), encode(("todos", 0)))
        assert not within(encode(("todos",)), encode(("todo",)))

    def test_everything_is_within_root(self):
        assert within(encode(("counter",)), encode(()))


class TestUserString:
    def test_nested(self):
        assert to_user_string(("todos", 0, LENGTH)) == "store.todos.0.length"

    def test_root(self):
        assert to_user_string(()) == "store"
