"""
Proto dispatch tests - ordering, symbol leaves and grammar inheritance
"""

import pytest

from protogram import DuplicateSymbol, Engine, Grammar, NO_MATCH, ProtoGroup, UnknownRule
from protogram.peg.build import lit, pat, proto, ref, seq, sym_alt, token, SYM


def command_grammar():
    return Grammar([
        token("TOP", ref("command")),
        proto("command", "create", "retrieve", "update", "delete"),
    ])


class TestResolve:
    def test_symbol_leaf(self):
        """A <sym>-only alternative keeps the symbol as a leaf"""
        node, symbol = Engine(command_grammar()).resolve("command", "retrieve")

        assert symbol == "retrieve"
        assert node.symbol == "retrieve"
        assert node.name == "command"
        assert str(node["sym"]) == "retrieve"
        assert node["sym"].span == (0, 8)

    def test_no_alternative_matches(self):
        assert Engine(command_grammar()).resolve("command", "unknown") is NO_MATCH

    def test_resolve_takes_group_object(self):
        g = command_grammar()
        node, symbol = Engine(g).resolve(g.rules["command"], "/delete", 1)
        assert symbol == "delete"
        assert node.span == (1, 7)

    def test_resolve_rejects_plain_rule(self):
        with pytest.raises(TypeError):
            Engine(command_grammar()).resolve("TOP", "create")

    def test_first_declared_wins(self):
        """Both alternatives match; the earlier one is chosen, not the longer"""
        g = Grammar([proto("op", sym_alt("short", lit("a")), sym_alt("long", lit("ab")))])
        node, symbol = Engine(g).resolve("op", "ab")

        assert symbol == "short"
        assert node.span == (0, 1)

    def test_prefix_symbols_keep_declaration_order(self):
        g = Grammar([proto("kw", "do", "done")])
        _, symbol = Engine(g).resolve("kw", "done")
        assert symbol == "do"

    def test_custom_body_has_no_symbol_leaf(self):
        g = Grammar([
            proto("num", sym_alt("hex", seq(SYM, ref("digits"))), sym_alt("dec", ref("digits"))),
            token("digits", pat(r"[0-9a-f]+")),
        ])
        node, symbol = Engine(g).resolve("num", "hexff")

        assert symbol == "hex"
        assert node.keys() == ["digits"]
        assert "sym" not in node
        assert str(node["digits"]) == "ff"

    def test_foreign_group_with_pattern_body(self):
        """A group built outside the grammar still gets its patterns compiled"""
        group = proto("num", sym_alt("d", pat(r"\d+")))
        node, symbol = Engine(command_grammar()).resolve(group, "12")

        assert symbol == "d"
        assert node.span == (0, 2)

    def test_foreign_group_duplicate_symbol(self):
        with pytest.raises(DuplicateSymbol) as exc:
            Engine(command_grammar()).resolve(proto("k", "a", "a"), "a")
        assert exc.value.symbol == "a"

    def test_foreign_group_unknown_reference(self):
        with pytest.raises(UnknownRule):
            Engine(command_grammar()).resolve(proto("k", sym_alt("a", ref("nope"))), "a")

    def test_rule_kind_symbol_skips_whitespace(self):
        """A <sym>-only alternative of a rule proto skips leading whitespace"""
        g = Grammar([proto("kw", "do", kind="rule")])
        node, symbol = Engine(g).resolve("kw", "  do")

        assert symbol == "do"
        assert node.span == (0, 4)
        assert node["sym"].span == (2, 4)

    def test_proto_inside_rule(self):
        g = command_grammar()
        m = Engine(g).match("TOP", "update", anchored=True)
        assert m["command"].symbol == "update"


class TestProtoGrammar:
    def test_duplicate_symbol_rejected(self):
        with pytest.raises(DuplicateSymbol) as exc:
            Grammar([proto("command", "create", "create")])
        assert exc.value.rule == "command"
        assert exc.value.symbol == "create"

    def test_derive_adds_alternative(self, rest_proto):
        g2 = rest_proto.grammar.derive(alts={"command": [sym_alt("patch")]})

        assert Engine(rest_proto.grammar).match("TOP", "/p/patch", anchored=True) is NO_MATCH
        m = Engine(g2).match("TOP", "/p/patch", anchored=True)
        assert m["command"].symbol == "patch"
        assert isinstance(g2.rules["command"], ProtoGroup)
        assert rest_proto.grammar.rules["command"].symbols == ["create", "retrieve", "update", "delete"]

    def test_derive_overrides_rule(self, rest_proto):
        g2 = rest_proto.grammar.derive(token("subject", pat(r"[a-z]+")))
        engine = Engine(g2)
        assert engine.match("TOP", "/abc/create", anchored=True)
        assert engine.match("TOP", "/abc1/create", anchored=True) is NO_MATCH
