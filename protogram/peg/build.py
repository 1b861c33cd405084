# protogram/peg/build.py
"""Shorthands for building grammars in Python instead of notation.

    g = Grammar([
        token("TOP", seq("/", ref("subject"), "/", ref("command"), opt(seq("/", ref("data"))))),
        token("subject", pat(r"\\w+")),
        proto("command", "create", "retrieve", "update", "delete"),
        token("data", many(ANY)),
    ])

Plain strings inside combinators are literals.
"""

from __future__ import annotations
from typing import Union

from .ast import (
    Literal, CharClass, Any, Pattern, Ref, Sym, Backref, And, Not, Repeat, Seq, Choice,
    RuleDef, ProtoAlt, ProtoGroup, Node, TOKEN, RULE, REGEX,
)

Expr = Union[Node, str]

ANY = Any()
SYM = Sym()


def _node(x: Expr) -> Node:
    return Literal(x) if isinstance(x, str) else x


def lit(text: str) -> Literal:
    return Literal(text)

def pat(source: str, flags: str = "") -> Pattern:
    return Pattern(source, flags)

def chars(spec: str, negated: bool = False) -> CharClass:
    """``chars("a-z_")``: single characters and inclusive ``x-y`` ranges."""
    ranges, singles = [], []
    i = 0
    while i < len(spec):
        if i + 2 < len(spec) and spec[i + 1] == "-":
            lo, hi = sorted((ord(spec[i]), ord(spec[i + 2])))
            ranges.append((lo, hi))
            i += 3
        else:
            singles.append(spec[i])
            i += 1
    return CharClass(negated, tuple(ranges), tuple(singles))

def ref(name: str, capture: bool = True) -> Ref:
    return Ref(name, capture)

def backref(name: str) -> Backref:
    return Backref(name)

def seq(*items: Expr) -> Node:
    nodes = tuple(_node(x) for x in items)
    return nodes[0] if len(nodes) == 1 else Seq(nodes)

def alt(*options: Expr) -> Node:
    nodes = tuple(_node(x) for x in options)
    return nodes[0] if len(nodes) == 1 else Choice(nodes)

def opt(x: Expr) -> Repeat:
    return Repeat(_node(x), "?")

def many(x: Expr) -> Repeat:
    return Repeat(_node(x), "*")

def some(x: Expr) -> Repeat:
    return Repeat(_node(x), "+")

def ahead(x: Expr) -> And:
    return And(_node(x))

def not_ahead(x: Expr) -> Not:
    return Not(_node(x))


def token(name: str, expr: Expr, anchored: bool = False) -> RuleDef:
    return RuleDef(name, _node(expr), TOKEN, anchored)

def rule(name: str, expr: Expr, anchored: bool = False) -> RuleDef:
    return RuleDef(name, _node(expr), RULE, anchored)

def regex(name: str, expr: Expr, anchored: bool = False) -> RuleDef:
    return RuleDef(name, _node(expr), REGEX, anchored)


def proto(name: str, *alts: Union[str, ProtoAlt], kind: str = TOKEN) -> ProtoGroup:
    """A proto; bare strings become ``<sym>``-only alternatives."""
    return ProtoGroup(name, tuple(ProtoAlt(a, SYM, kind) if isinstance(a, str) else a for a in alts), kind)

def sym_alt(symbol: str, expr: Expr = SYM, kind: str = TOKEN) -> ProtoAlt:
    return ProtoAlt(symbol, _node(expr), kind)
