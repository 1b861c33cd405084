# protogram/peg/engine.py
from __future__ import annotations
from typing import Callable, List, NamedTuple, Optional, Set, Tuple, Union

import regex
from loguru import logger

from ..config import settings
from ..errors import ParseCancelled
from .ast import (
    Literal, CharClass, Any, Pattern, Ref, Sym, Backref, And, Not, Repeat, Seq, Choice,
    Grammar, ProtoGroup, Node, RULE,
)
from .match import MatchNode, NoMatch, NO_MATCH
from .proto import resolve_group

# Recursive-descent engine:
# - The offset is a plain int threaded through every call; backtracking means
#   using the old value. Nothing is undone because nothing shared is mutated.
# - _eval returns (end, captures) on success and None on failure. Captures of a
#   failed branch are dropped with it.
# - Only failures are memoized, per call, as (rule_name, pos). A successful
#   MatchNode always has exactly one parent.
# - Left recursion is not supported: re-entering a rule at the same offset
#   fails that branch.

Outcome = Optional[Tuple[int, List[MatchNode]]]
CancelHook = Callable[[], bool]


class Frame(NamedTuple):
    """Per-rule evaluation context, inherited by nested groups."""
    rule: str
    skip_ws: bool
    symbol: Optional[str] = None


class ParseState:
    """Transient bookkeeping for one match call. Never shared between calls."""

    __slots__ = ("text", "max_steps", "cancel", "steps", "failed", "active",
                 "cuts", "furthest", "trace", "memoize")

    def __init__(self, text: str, max_steps: Optional[int], cancel: Optional[CancelHook],
                 trace: bool, memoize: bool):
        self.text = text
        self.max_steps = max_steps
        self.cancel = cancel
        self.steps = 0
        self.failed: Set[Tuple[str, int]] = set()
        self.active: Set[Tuple[str, int]] = set()
        self.cuts = 0       # left-recursion cuts seen so far
        self.furthest = 0   # furthest offset where a terminal was attempted
        self.trace = trace
        self.memoize = memoize

    def tick(self, rule: str, pos: int) -> None:
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            raise ParseCancelled(rule, pos, self.steps)
        if self.cancel is not None and self.cancel():
            raise ParseCancelled(rule, pos, self.steps, "cancelled by caller")

    def reached(self, pos: int) -> None:
        if pos > self.furthest:
            self.furthest = pos


class Engine:
    """Pattern engine for one grammar.

    Holds only immutable configuration, so a single Engine may be used from
    several threads at once; every ``match`` call builds its own ParseState.
    """

    def __init__(self, grammar: Grammar, *, max_steps: Optional[int] = None,
                 whitespace: Optional[str] = None, trace: Optional[bool] = None,
                 memoize_failures: Optional[bool] = None):
        self.grammar = grammar
        self.max_steps = max_steps if max_steps is not None else settings.max_steps
        self.ws = regex.compile(whitespace if whitespace is not None else settings.whitespace)
        self.trace = trace if trace is not None else settings.trace
        self.memoize = memoize_failures if memoize_failures is not None else settings.memoize_failures

    # ---- Public entrypoints ----
    def new_state(self, text: str, max_steps: Optional[int] = None,
                  cancel: Optional[CancelHook] = None) -> ParseState:
        return ParseState(text, max_steps if max_steps is not None else self.max_steps,
                          cancel, self.trace, self.memoize)

    def match(self, rule_name: str, text: str, pos: int = 0, *, anchored: Optional[bool] = None,
              max_steps: Optional[int] = None,
              cancel: Optional[CancelHook] = None) -> Union[MatchNode, NoMatch]:
        """Apply ``rule_name`` at ``pos``.

        Anchored matches must end at len(text); a ``rule``-kind root may leave
        trailing whitespace, which its span then covers. ``anchored=None``
        uses the rule's own ``anchored`` flag (protos are never anchored by
        themselves). ``Program.parse`` always anchors, ``Program.subparse``
        never does.
        """
        defn = self.grammar.require(rule_name)
        if not 0 <= pos <= len(text):
            raise ValueError(f"offset {pos} outside input of length {len(text)}")
        if anchored is None:
            anchored = getattr(defn, "anchored", False)
        state = self.new_state(text, max_steps, cancel)
        node = self.apply_rule(state, rule_name, pos)
        if node is not None and anchored:
            end = node.end
            if defn.kind == RULE:
                end = self.skip_ws(text, end)
            if end != len(text):
                state.reached(end)
                node = None
            else:
                node.end = end
        if node is None:
            logger.debug("'{}' did not match (furthest offset {}, {} steps)",
                         rule_name, state.furthest, state.steps)
            return NO_MATCH
        logger.debug("'{}' matched [{}:{}] in {} steps", rule_name, node.start, node.end, state.steps)
        return node

    def resolve(self, group: Union[str, ProtoGroup], text: str, pos: int = 0, *,
                max_steps: Optional[int] = None,
                cancel: Optional[CancelHook] = None) -> Union[Tuple[MatchNode, str], NoMatch]:
        """Resolve a proto at ``pos``; returns (node, symbol) or NO_MATCH.

        A ProtoGroup that is not this grammar's own instance is first checked
        against a grammar derived with it, so it gets the same validation
        (``DuplicateSymbol``, ``UnknownRule``, bad patterns) as a declared one.
        """
        if isinstance(group, str):
            defn = self.grammar.require(group)
            if not isinstance(defn, ProtoGroup):
                raise TypeError(f"'{group}' is a {defn.kind}, not a proto")
            group = defn
        elif self.grammar.rules.get(group.name) is not group:
            sibling = Engine(self.grammar.derive(group), max_steps=self.max_steps,
                             whitespace=self.ws.pattern, trace=self.trace,
                             memoize_failures=self.memoize)
            return sibling.resolve(group.name, text, pos, max_steps=max_steps, cancel=cancel)
        if not 0 <= pos <= len(text):
            raise ValueError(f"offset {pos} outside input of length {len(text)}")
        state = self.new_state(text, max_steps, cancel)
        state.tick(group.name, pos)
        res = resolve_group(self, state, group, pos)
        return NO_MATCH if res is None else res

    # ---- Rule application ----
    def apply_rule(self, state: ParseState, name: str, pos: int,
                   referrer: Optional[str] = None) -> Optional[MatchNode]:
        state.tick(name, pos)
        if state.trace:
            logger.trace("try {} @ {}", name, pos)
        defn = self.grammar.require(name, referrer)
        key = (name, pos)
        if key in state.active:
            state.cuts += 1
            return None
        if state.memoize and key in state.failed:
            return None

        cuts = state.cuts
        state.active.add(key)
        try:
            if isinstance(defn, ProtoGroup):
                res = resolve_group(self, state, defn, pos)
                node = res[0] if res is not None else None
            else:
                out = self.eval_body(state, Frame(name, defn.skips_whitespace), defn.expr, pos)
                node = None if out is None else MatchNode(name, state.text, pos, out[0], out[1])
        finally:
            state.active.discard(key)

        if node is None:
            # a failure caused by a left-recursion cut depends on the call stack
            if state.memoize and state.cuts == cuts:
                state.failed.add(key)
            if state.trace:
                logger.trace("fail {} @ {}", name, pos)
        return node

    def eval_body(self, state: ParseState, frame: Frame, expr: Node, pos: int) -> Outcome:
        return self._item(state, frame, expr, pos, [])

    def skip_ws(self, text: str, pos: int) -> int:
        m = self.ws.match(text, pos)
        return m.end() if m else pos

    # ---- Evaluator for expressions ----
    def _eval(self, state: ParseState, frame: Frame, node: Node, pos: int,
              prior: List[MatchNode]) -> Outcome:
        text = state.text

        if isinstance(node, Literal):
            state.reached(pos)
            if text.startswith(node.text, pos):
                return pos + len(node.text), []
            return None

        if isinstance(node, Any):
            state.reached(pos)
            if pos < len(text):
                return pos + 1, []
            return None

        if isinstance(node, CharClass):
            state.reached(pos)
            if pos < len(text) and node.matches(text[pos]):
                return pos + 1, []
            return None

        if isinstance(node, Pattern):
            state.reached(pos)
            m = self.grammar.compiled(node).match(text, pos)
            if m is None:
                return None
            return m.end(), []

        if isinstance(node, Ref):
            child = self.apply_rule(state, node.name, pos, frame.rule)
            if child is None:
                return None
            return child.end, ([child] if node.capture else [])

        if isinstance(node, Sym):
            state.reached(pos)
            sym = frame.symbol or ""
            if text.startswith(sym, pos):
                return pos + len(sym), []
            return None

        if isinstance(node, Backref):
            state.reached(pos)
            for prev in reversed(prior):
                if prev.name == node.name:
                    s = prev.value
                    if text.startswith(s, pos):
                        return pos + len(s), []
                    return None
            return None  # nothing captured under that name yet

        if isinstance(node, And):
            out = self._item(state, frame, node.node, pos, prior)
            return (pos, []) if out is not None else None

        if isinstance(node, Not):
            out = self._item(state, frame, node.node, pos, prior)
            return (pos, []) if out is None else None

        if isinstance(node, Repeat):
            return self._repeat(state, frame, node, pos, prior)

        if isinstance(node, Seq):
            cur = pos
            caps: List[MatchNode] = []
            for it in node.items:
                out = self._item(state, frame, it, cur, prior + caps)
                if out is None:
                    return None
                cur = out[0]
                caps.extend(out[1])
            return cur, caps

        if isinstance(node, Choice):
            for it in node.alts:
                out = self._item(state, frame, it, pos, prior)
                if out is not None:
                    return out
            return None

        raise AssertionError(f"unknown node: {node!r}")

    def _item(self, state: ParseState, frame: Frame, node: Node, pos: int,
              prior: List[MatchNode]) -> Outcome:
        """One item attempt. ``rule`` frames skip whitespace first."""
        start = self.skip_ws(state.text, pos) if frame.skip_ws else pos
        out = self._eval(state, frame, node, start, prior)
        # whitespace only counts when the item consumed something
        if out is not None and out[0] == start:
            return pos, out[1]
        return out

    def _repeat(self, state: ParseState, frame: Frame, node: Repeat, pos: int,
                prior: List[MatchNode]) -> Outcome:
        if node.kind == "?":
            out = self._item(state, frame, node.node, pos, prior)
            return out if out is not None else (pos, [])

        caps: List[MatchNode] = []
        cur = pos
        if node.kind == "+":
            out = self._item(state, frame, node.node, pos, prior)
            if out is None:
                return None
            cur, first = out
            caps.extend(first)
        elif node.kind != "*":
            raise AssertionError(f"unknown repeat kind {node.kind!r}")

        while True:
            out = self._item(state, frame, node.node, cur, prior + caps)
            if out is None or out[0] == cur:
                break
            cur = out[0]
            caps.extend(out[1])
        return cur, caps
