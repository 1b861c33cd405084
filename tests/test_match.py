"""
Match tree tests - positional and associative lookup, absent entries, dumps
"""

from protogram import MatchNode, NO_MATCH, NoMatch


class TestLookup:
    def test_named_and_positional(self, rest):
        m = rest.parse("/product/update/7/notify")

        assert m["subject"] is m[0]
        assert m["data"] is m[-1]
        assert m.get(2) is m["data"]
        assert m.keys() == ["subject", "command", "data"]
        assert [str(v) for v in m.values()] == ["product", "update", "7/notify"]
        assert [k for k, _ in m.items()] == m.keys()

    def test_missing_entries_are_absent(self, rest):
        m = rest.parse("/product/create")

        assert m["data"] is None
        assert m[5] is None
        assert m.get("data", "fallback") == "fallback"
        assert not m.exists("data")
        assert not m.exists(2)
        assert m.exists(1)
        assert 5 not in m

    def test_repeated_names(self):
        from protogram import Program
        prog = Program.from_source(r"""
            token TOP = (slash /\w+/)+ ;
            token slash = '/' ;
        """)
        m = prog.parse("/a/b")

        assert isinstance(m["slash"], list)
        assert [c.span for c in m["slash"]] == [(0, 1), (2, 3)]
        assert m.pairs() == [("slash", m[0]), ("slash", m[1])]
        assert m.caps() == {"slash": m.all("slash")}

    def test_spans_reference_input(self, rest):
        text = "/product/update/7/notify"
        m = rest.parse(text)

        assert m["subject"].text is text
        assert (m["subject"].from_, m["subject"].to) == (1, 8)
        assert m["subject"].value == "product"


class TestNodes:
    def test_no_match_singleton(self):
        assert NoMatch() is NO_MATCH
        assert not NO_MATCH
        assert repr(NO_MATCH) == "NO_MATCH"

    def test_walk_is_post_order(self, rest):
        m = rest.parse("/product/update/7/notify")
        assert [n.name for n in m.walk()] == ["subject", "command", "data", "TOP"]

    def test_pretty(self, rest_proto):
        m = rest_proto.parse("/p/create")
        m["subject"].make("P")
        assert m.pretty().splitlines() == [
            "TOP '/p/create'",
            "  subject 'p' => 'P'",
            "  command:sym<create> 'create'",
            "    sym 'create'",
        ]

    def test_equality_is_structural(self):
        a = MatchNode("x", "abc", 0, 2, [MatchNode("y", "abc", 1, 2)])
        b = MatchNode("x", "zabc"[1:], 0, 2, [MatchNode("y", "abc", 1, 2)])
        c = MatchNode("x", "abc", 0, 2)

        assert a == b
        assert a != c

    def test_repr(self):
        node = MatchNode("command", "update", 0, 6, symbol="update")
        assert repr(node) == "<MatchNode command sym<update> [0:6] 'update'>"
