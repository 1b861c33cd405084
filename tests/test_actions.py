"""
Action binding tests - made values, post-order, proto-specific actions
"""

import pytest

from protogram import ActionError, ActionTable, bind_actions


def split_data(m):
    return str(m).split("/")


class TestMadeValues:
    def test_data_split(self, rest):
        """The data action produces the segments after the command"""
        m = rest.parse("/product/update/7/notify", actions={"data": split_data})
        assert m["data"].made == ["7", "notify"]

    def test_parent_reads_child_made(self, rest):
        actions = {
            "data": split_data,
            "TOP": lambda m: {
                "subject": str(m["subject"]),
                "command": str(m["command"]),
                "data": m["data"].made if m["data"] else [],
            },
        }
        assert rest.parse("/product/update/7/notify", actions=actions).made == {
            "subject": "product", "command": "update", "data": ["7", "notify"],
        }
        assert rest.parse("/product/create", actions=actions).made["data"] == []

    def test_no_action_no_value(self, rest):
        m = rest.parse("/product/create", actions={"data": split_data})
        assert m.made is None
        assert not m.has_made
        assert not m["subject"].has_made

    def test_none_result_leaves_slot_absent(self, rest):
        m = rest.parse("/product/create", actions={"subject": lambda m: None})
        assert not m["subject"].has_made

    def test_ast_alias(self, rest):
        m = rest.parse("/product/create", actions={"subject": lambda m: str(m).upper()})
        assert m["subject"].ast == "PRODUCT"

    def test_program_default_actions(self):
        from protogram import Program
        prog = Program.from_source("token TOP = /\\d+/ ;", actions={"TOP": lambda m: int(str(m))})
        assert prog.parse("42").made == 42
        assert prog.parse("42", actions={"TOP": lambda m: -int(str(m))}).made == -42


class TestOrder:
    def test_post_order(self, rest):
        """Children's actions run before their parent's"""
        seen = []
        record = lambda m: seen.append(m.name)
        actions = {name: record for name in ("TOP", "subject", "command", "data")}
        rest.parse("/product/update/7/notify", actions=actions)

        assert seen == ["subject", "command", "data", "TOP"]

    def test_child_value_visible_to_parent(self, rest):
        state = {}

        def top(m):
            state["child_made"] = m["subject"].has_made

        rest.parse("/product/create", actions={"subject": str, "TOP": top})
        assert state["child_made"] is True


class TestProtoActions:
    def test_symbol_specific_action_wins(self, rest_proto):
        actions = {
            "command:sym<update>": lambda m: "U",
            "command": lambda m: "generic:" + m.symbol,
        }
        assert rest_proto.parse("/p/update", actions=actions)["command"].made == "U"
        assert rest_proto.parse("/p/create", actions=actions)["command"].made == "generic:create"

    def test_sym_leaf_action(self, rest_proto):
        m = rest_proto.parse("/p/delete", actions={"sym": lambda m: str(m).upper()})
        assert m["command"]["sym"].made == "DELETE"


class TestBinder:
    def test_made_value_never_overwritten(self, rest):
        m = rest.parse("/product/create", actions={"subject": lambda m: 1})
        bind_actions(m, {"subject": lambda m: 2})
        assert m["subject"].made == 1

    def test_make_twice_raises(self, rest):
        m = rest.parse("/product/create")
        m.make("first")
        with pytest.raises(ValueError):
            m.make("second")
        assert m.made == "first"

    def test_bind_returns_root(self, rest):
        m = rest.parse("/product/create")
        assert bind_actions(m, ActionTable()) is m

    def test_callback_error_is_wrapped(self, rest):
        with pytest.raises(ActionError) as exc:
            rest.parse("/product/create", actions={"command": lambda m: 1 / 0})
        assert exc.value.rule == "command"
        assert exc.value.fragment == "create"
        assert isinstance(exc.value.__cause__, ZeroDivisionError)

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            ActionTable({"TOP": 42})

    def test_from_object(self, rest):
        class Actions:
            def data(self, m):
                return split_data(m)

            def TOP(self, m):
                return m["data"].made

            def _private(self, m):
                raise AssertionError("not an action")

        table = ActionTable.from_object(Actions())
        assert "_private" not in table
        assert rest.parse("/p/update/a/b", actions=table).made == ["a", "b"]

    def test_table_is_read_only(self):
        table = ActionTable(TOP=str)
        with pytest.raises(TypeError):
            table["TOP"] = repr
