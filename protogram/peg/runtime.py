# protogram/peg/runtime.py
from __future__ import annotations
from pathlib import Path
from typing import Mapping, Optional, Union

from loguru import logger

from .actions import Action, ActionTable, bind_actions
from .ast import Grammar
from .engine import CancelHook, Engine
from .loader import load_text
from .match import MatchNode
from .parser import parse_grammar

Actions = Union[ActionTable, Mapping[str, Action], None]


class Program:
    """A grammar, its engine and (optionally) a default action table.

    ``parse`` goes Start -> Parsing -> Failed (returns None) or
    Matched -> ActionsRunning -> Done (returns the annotated root node).
    """

    def __init__(self, grammar: Grammar, actions: Actions = None, **engine_opts):
        self.grammar = grammar
        self.engine = Engine(grammar, **engine_opts)
        self.actions = _as_table(actions)

    @classmethod
    def from_source(cls, src: str, actions: Actions = None, **engine_opts) -> "Program":
        return cls(parse_grammar(src), actions, **engine_opts)

    @classmethod
    def from_file(cls, path: Union[str, Path], actions: Actions = None, **engine_opts) -> "Program":
        return cls.from_source(load_text(path), actions, **engine_opts)

    def parse(self, text: str, rule: Optional[str] = None, actions: Actions = None, *,
              max_steps: Optional[int] = None,
              cancel: Optional[CancelHook] = None) -> Optional[MatchNode]:
        """Match the whole of ``text``; None when it does not."""
        return self._run(text, rule, actions, True, max_steps, cancel)

    def subparse(self, text: str, rule: Optional[str] = None, actions: Actions = None, *,
                 max_steps: Optional[int] = None,
                 cancel: Optional[CancelHook] = None) -> Optional[MatchNode]:
        """Like ``parse`` but the match may stop before the end of ``text``."""
        return self._run(text, rule, actions, False, max_steps, cancel)

    def parsefile(self, path: Union[str, Path], rule: Optional[str] = None,
                  actions: Actions = None, **kw) -> Optional[MatchNode]:
        return self.parse(load_text(path), rule, actions, **kw)

    def _run(self, text: str, rule: Optional[str], actions: Actions, anchored: bool,
             max_steps: Optional[int], cancel: Optional[CancelHook]) -> Optional[MatchNode]:
        rule = rule or self.grammar.start
        logger.debug("{} '{}' over {} chars", "parse" if anchored else "subparse", rule, len(text))
        node = self.engine.match(rule, text, 0, anchored=anchored, max_steps=max_steps, cancel=cancel)
        if not node:
            return None
        table = _as_table(actions) if actions is not None else self.actions
        if table:
            bind_actions(node, table)
        return node


def _as_table(actions: Actions) -> Optional[ActionTable]:
    if actions is None or isinstance(actions, ActionTable):
        return actions
    return ActionTable(actions)
