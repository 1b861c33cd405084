# protogram/peg/ast.py
from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import regex
from loguru import logger

from ..config import settings
from ..errors import DuplicateSymbol, MalformedRule, UnknownRule

# ---- Expression node definitions ----

@dataclass(frozen=True)
class Literal:
    text: str  # unescaped text

@dataclass(frozen=True)
class CharClass:
    negated: bool
    # ranges are inclusive (lo..hi). singles holds single codepoints (as str of length 1)
    ranges: Tuple[Tuple[int, int], ...] = ()
    singles: Tuple[str, ...] = ()

    def matches(self, ch: str) -> bool:
        cp = ord(ch)
        hit = ch in self.singles or any(lo <= cp <= hi for lo, hi in self.ranges)
        return hit != self.negated

@dataclass(frozen=True)
class Any:
    pass

@dataclass(frozen=True)
class Pattern:
    source: str  # regex source, anchored at the current offset
    flags: str = ""

    def compile(self) -> "regex.Pattern":
        return _compile_pattern(self.source, self.flags)

@dataclass(frozen=True)
class Ref:
    name: str
    capture: bool = True  # False for <.name>

@dataclass(frozen=True)
class Sym:
    pass  # the symbol literal of the enclosing proto alternative

@dataclass(frozen=True)
class Backref:
    name: str  # text of the latest capture with this name, same rule

@dataclass(frozen=True)
class And:
    node: "Node"  # positive lookahead (&)

@dataclass(frozen=True)
class Not:
    node: "Node"  # negative lookahead (!)

@dataclass(frozen=True)
class Repeat:
    node: "Node"
    kind: str  # '?', '*', '+'

@dataclass(frozen=True)
class Seq:
    items: Tuple["Node", ...]

@dataclass(frozen=True)
class Choice:
    alts: Tuple["Node", ...]

Node = Union[Literal, CharClass, Any, Pattern, Ref, Sym, Backref, And, Not, Repeat, Seq, Choice]

# ---- Rules ----

TOKEN = "token"  # whitespace-sensitive
RULE = "rule"    # whitespace-insensitive
REGEX = "regex"  # whitespace-sensitive, may use backreferences
RULE_KINDS = (TOKEN, RULE, REGEX)
REPEAT_KINDS = ("?", "*", "+")

_FLAG_MAP = {
    "i": regex.IGNORECASE,
    "m": regex.MULTILINE,
    "s": regex.DOTALL,
    "x": regex.VERBOSE,
    "a": regex.ASCII,
}


def _compile_pattern(source: str, flags: str) -> "regex.Pattern":
    f = 0
    for ch in flags:
        if ch not in _FLAG_MAP:
            raise ValueError(f"unknown pattern flag {ch!r}")
        f |= _FLAG_MAP[ch]
    return regex.compile(source, f)


@dataclass(frozen=True)
class RuleDef:
    """A named rule. ``anchored`` rules must cover the whole input when they
    are the rule a match starts from, unless the caller says otherwise."""
    name: str
    expr: Node
    kind: str = TOKEN
    anchored: bool = False

    @property
    def skips_whitespace(self) -> bool:
        return self.kind == RULE


@dataclass(frozen=True)
class ProtoAlt:
    """One ``name:sym<symbol>`` alternative of a proto. A bare ``Sym()`` body
    means "match the symbol itself"."""
    symbol: str
    expr: Node = Sym()
    kind: str = TOKEN

    @property
    def sole_sym(self) -> bool:
        return isinstance(self.expr, Sym)

    @property
    def skips_whitespace(self) -> bool:
        return self.kind == RULE


@dataclass(frozen=True)
class ProtoGroup:
    name: str
    alts: Tuple[ProtoAlt, ...] = ()
    kind: str = TOKEN

    @property
    def symbols(self) -> List[str]:
        return [a.symbol for a in self.alts]

    def alt_name(self, alt: ProtoAlt) -> str:
        return f"{self.name}:sym<{alt.symbol}>"

    def with_alts(self, alts: Iterable[ProtoAlt]) -> "ProtoGroup":
        return ProtoGroup(self.name, self.alts + tuple(alts), self.kind)


Definition = Union[RuleDef, ProtoGroup]


class Grammar:
    """Validated mapping of rule name -> RuleDef | ProtoGroup.

    Never mutated after construction, so one instance can serve any number of
    concurrent parses. Use ``derive`` to get a modified copy.
    """

    __slots__ = ("rules", "start", "name", "_patterns")

    def __init__(self, rules: Union[Mapping[str, Definition], Iterable[Definition]],
                 start: Optional[str] = None, name: Optional[str] = None,
                 default_start: Optional[str] = None):
        if default_start is None:
            default_start = settings.default_start
        if isinstance(rules, Mapping):
            table: Dict[str, Definition] = {}
            for key, d in rules.items():
                if key != d.name:
                    raise MalformedRule(key, f"registered under a different name ('{d.name}')")
                table[key] = d
        else:
            table = {}
            for d in rules:
                if d.name in table:
                    raise MalformedRule(d.name, "defined more than once")
                table[d.name] = d
        if not table:
            raise MalformedRule(None, "empty grammar")
        if start is None:
            start = default_start if default_start in table else next(iter(table))
        if start not in table:
            raise UnknownRule(start)

        self.rules: Mapping[str, Definition] = MappingProxyType(table)
        self.start: str = start
        self.name: Optional[str] = name
        self._patterns: Mapping[Pattern, "regex.Pattern"] = MappingProxyType(_validate(table))
        logger.debug("grammar {} built: {} rules, start={}", name or "<anon>", len(table), start)

    def __repr__(self) -> str:
        return f"Grammar(name={self.name!r}, start={self.start!r}, rules={list(self.rules)!r})"

    def __contains__(self, name: object) -> bool:
        return name in self.rules

    def __iter__(self) -> Iterator[str]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def require(self, name: str, referrer: Optional[str] = None) -> Definition:
        try:
            return self.rules[name]
        except KeyError:
            raise UnknownRule(name, referrer) from None

    def compiled(self, pat: Pattern) -> "regex.Pattern":
        return self._patterns[pat]

    def derive(self, *defs: Definition, alts: Optional[Mapping[str, Iterable[ProtoAlt]]] = None,
               start: Optional[str] = None, name: Optional[str] = None) -> "Grammar":
        """New grammar that inherits this one: ``defs`` replace or add rules,
        ``alts`` appends alternatives to existing protos."""
        table: Dict[str, Definition] = dict(self.rules)
        for d in defs:
            table[d.name] = d
        for group_name, extra in (alts or {}).items():
            group = table.get(group_name)
            if not isinstance(group, ProtoGroup):
                raise UnknownRule(group_name)
            table[group_name] = group.with_alts(extra)
        return Grammar(table, start=start or self.start, name=name or self.name)


# ---- Validation ----

def _walk(node: Node) -> Iterator[Node]:
    yield node
    if isinstance(node, (And, Not, Repeat)):
        yield from _walk(node.node)
    elif isinstance(node, Seq):
        for it in node.items:
            yield from _walk(it)
    elif isinstance(node, Choice):
        for it in node.alts:
            yield from _walk(it)


def _check_body(rule: str, expr: Node, kind: str, in_proto: bool,
                table: Mapping[str, Definition], patterns: Dict[Pattern, "regex.Pattern"]) -> None:
    if kind not in RULE_KINDS:
        raise MalformedRule(rule, f"unknown rule kind {kind!r}")
    for node in _walk(expr):
        if isinstance(node, Ref):
            if node.name not in table:
                raise UnknownRule(node.name, rule)
        elif isinstance(node, Backref):
            if node.name not in table:
                raise UnknownRule(node.name, rule)
            if kind != REGEX:
                raise MalformedRule(rule, f"backreference ${node.name} needs a regex rule, not {kind}")
        elif isinstance(node, Sym):
            if not in_proto:
                raise MalformedRule(rule, "<sym> used outside a proto alternative")
        elif isinstance(node, Choice):
            if not node.alts:
                raise MalformedRule(rule, "alternation without alternatives")
        elif isinstance(node, Repeat):
            if node.kind not in REPEAT_KINDS:
                raise MalformedRule(rule, f"unknown repetition {node.kind!r}")
        elif isinstance(node, Pattern):
            if node not in patterns:
                try:
                    patterns[node] = node.compile()
                except (regex.error, ValueError) as e:
                    raise MalformedRule(rule, f"bad pattern /{node.source}/: {e}") from e
        elif not isinstance(node, (Literal, CharClass, Any, And, Not, Seq)):
            raise MalformedRule(rule, f"unknown expression node {node!r}")


def _validate(table: Mapping[str, Definition]) -> Dict[Pattern, "regex.Pattern"]:
    patterns: Dict[Pattern, "regex.Pattern"] = {}
    for name, d in table.items():
        if isinstance(d, ProtoGroup):
            if d.kind not in RULE_KINDS:
                raise MalformedRule(name, f"unknown rule kind {d.kind!r}")
            seen = set()
            for alt in d.alts:
                if alt.symbol in seen:
                    raise DuplicateSymbol(name, alt.symbol)
                seen.add(alt.symbol)
                _check_body(d.alt_name(alt), alt.expr, alt.kind, True, table, patterns)
        elif isinstance(d, RuleDef):
            _check_body(name, d.expr, d.kind, False, table, patterns)
        else:
            raise MalformedRule(name, f"not a rule definition: {d!r}")
    return patterns
