"""Tests for args materialization and per-key updates."""
from __future__ import annotations

from storystore.core.args import apply_args_update, initial_args, materialize_args


class TestMaterializeArgs:
    """Initial args from argTypes."""

    def test_uses_default_values(self) -> None:
        args = materialize_args({
            "arg1": {"defaultValue": "arg1"},
            "arg2": {"defaultValue": 2},
            "arg3": {"defaultValue": {"complex": {"object": ["type"]}}},
        })
        assert args == {"arg1": "arg1", "arg2": 2, "arg3": {"complex": {"object": ["type"]}}}

    def test_arg_without_default_gets_no_entry(self) -> None:
        """Not None: absent."""
        args = materialize_args({"label": {"description": "text"}, "size": {"defaultValue": "m"}})
        assert args == {"size": "m"}

    def test_none_default_is_kept(self) -> None:
        assert materialize_args({"icon": {"defaultValue": None}}) == {"icon": None}

    def test_empty(self) -> None:
        assert materialize_args(None) == {}
        assert materialize_args({}) == {}

    def test_defaults_are_copied(self) -> None:
        arg_types = {"items": {"defaultValue": [1, 2]}}
        args = materialize_args(arg_types)
        args["items"].append(3)
        assert arg_types["items"]["defaultValue"] == [1, 2]

    def test_initial_args_reads_parameters(self) -> None:
        assert initial_args({"argTypes": {"a": {"defaultValue": 1}}}) == {"a": 1}
        assert initial_args({}) == {}


class TestApplyArgsUpdate:
    """Per-key shallow merge."""

    def test_adds_and_overwrites(self) -> None:
        assert apply_args_update({"foo": "bar", "n": 1}, {"n": 2, "baz": "bing"}) == {
            "foo": "bar",
            "n": 2,
            "baz": "bing",
        }

    def test_does_not_mutate_inputs(self) -> None:
        current = {"foo": "bar"}
        apply_args_update(current, {"baz": "bing"})
        assert current == {"foo": "bar"}
