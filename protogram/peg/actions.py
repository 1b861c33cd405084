# protogram/peg/actions.py
"""Semantic actions.

An ActionTable maps rule names to callables. After a successful parse the
binder walks the match tree children-first and calls ``action(node)`` for each
node whose rule has an entry; a non-None return value becomes ``node.made``.
Parents therefore see their children's made values:

    actions = ActionTable({
        "data": lambda m: str(m).split("/"),
        "TOP":  lambda m: {"data": m["data"].made if m["data"] else None},
    })

Proto alternatives can be targeted one by one with ``"command:sym<create>"``
keys; those take precedence over a plain ``"command"`` entry.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from loguru import logger

from ..errors import ActionError
from .match import MatchNode

Action = Callable[[MatchNode], Any]


class ActionTable(Mapping[str, Action]):
    __slots__ = ("_table",)

    def __init__(self, table: Optional[Mapping[str, Action]] = None, **kw: Action):
        merged: Dict[str, Action] = dict(table or {})
        merged.update(kw)
        for name, fn in merged.items():
            if not callable(fn):
                raise TypeError(f"action for '{name}' is not callable: {fn!r}")
        self._table = MappingProxyType(merged)

    @classmethod
    def from_object(cls, obj: object) -> "ActionTable":
        """Public callables of ``obj`` keyed by attribute name (e.g. an actions class instance)."""
        table = {}
        for attr in dir(obj):
            if attr.startswith("_"):
                continue
            fn = getattr(obj, attr)
            if callable(fn):
                table[attr] = fn
        return cls(table)

    def __getitem__(self, name: str) -> Action:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"ActionTable({sorted(self._table)!r})"

    def lookup(self, node: MatchNode) -> Optional[Action]:
        if node.symbol is not None:
            fn = self._table.get(f"{node.name}:sym<{node.symbol}>")
            if fn is not None:
                return fn
        return self._table.get(node.name)


def bind_actions(root: MatchNode, actions: Mapping[str, Action]) -> MatchNode:
    """Run actions over ``root`` in post-order, in place. Returns ``root``."""
    table = actions if isinstance(actions, ActionTable) else ActionTable(actions)
    ran = 0
    for node in root.walk():
        fn = table.lookup(node)
        if fn is None:
            continue
        if node.has_made:
            logger.debug("'{}' already has a made value; action skipped", node.name)
            continue
        try:
            value = fn(node)
        except Exception as e:
            raise ActionError(node.name, node.value) from e
        ran += 1
        if value is not None:
            node.make(value)
    logger.debug("bound {} actions under '{}'", ran, root.name)
    return root
