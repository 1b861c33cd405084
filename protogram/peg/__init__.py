# protogram/peg/__init__.py
"""Grammar engine.

This package provides:
- expression nodes, rules, protos and the immutable Grammar
- a grammar notation parser and Python combinators (``build``)
- the recursive-descent engine with proto dispatch
- the match tree and post-order action binding
"""

from .ast import (
    Literal, CharClass, Any, Pattern, Ref, Sym, Backref, And, Not, Repeat, Seq, Choice,
    RuleDef, ProtoAlt, ProtoGroup, Grammar, TOKEN, RULE, REGEX,
)
from . import build
from .match import MatchNode, NoMatch, NO_MATCH
from .engine import Engine, ParseState
from .actions import ActionTable, bind_actions
from .parser import parse_grammar
from .runtime import Program
