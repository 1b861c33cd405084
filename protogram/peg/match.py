# protogram/peg/match.py
"""Match tree.

A ``MatchNode`` records which rule matched which span of the input. Spans are
offsets into the caller's string; the text is only sliced when asked for.

Lookups never raise for missing entries:

    node["subject"]   # child named subject, a list if captured repeatedly, else None
    node[0]           # first child in encounter order, or None
    "data" in node    # existence
"""

from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

_ABSENT = object()


class NoMatch:
    """The "did not match" result. Falsy; there is exactly one instance."""

    _instance: Optional["NoMatch"] = None

    def __new__(cls) -> "NoMatch":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MATCH"


NO_MATCH = NoMatch()


class MatchNode:
    __slots__ = ("name", "text", "start", "end", "children", "symbol", "_made")

    def __init__(self, name: str, text: str, start: int, end: int,
                 children: Optional[List["MatchNode"]] = None,
                 symbol: Optional[str] = None):
        self.name = name
        self.text = text      # the full input, shared with every other node
        self.start = start
        self.end = end
        self.children: List[MatchNode] = children if children is not None else []
        self.symbol = symbol  # set for proto resolutions
        self._made: Any = _ABSENT

    # ---- span ----
    @property
    def value(self) -> str:
        return self.text[self.start:self.end]

    @property
    def from_(self) -> int:
        return self.start

    @property
    def to(self) -> int:
        return self.end

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        sym = f" sym<{self.symbol}>" if self.symbol is not None else ""
        return f"<MatchNode {self.name}{sym} [{self.start}:{self.end}] {self.value!r}>"

    # a zero-width match with no children is still a match
    def __bool__(self) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MatchNode):
            return NotImplemented
        return (self.name == other.name and self.start == other.start and self.end == other.end
                and self.symbol == other.symbol and self.value == other.value
                and self.children == other.children)

    __hash__ = None  # type: ignore[assignment]

    # ---- derived value ----
    @property
    def has_made(self) -> bool:
        return self._made is not _ABSENT

    @property
    def made(self) -> Any:
        """Value produced by this node's action, or None when none was produced."""
        return None if self._made is _ABSENT else self._made

    ast = made

    def make(self, value: Any) -> None:
        if self._made is not _ABSENT:
            raise ValueError(f"derived value of '{self.name}' is already set")
        self._made = value

    # ---- positional / associative lookup ----
    def all(self, name: str) -> List["MatchNode"]:
        return [c for c in self.children if c.name == name]

    def get(self, key: Union[str, int], default: Any = None) -> Any:
        if isinstance(key, int):
            if -len(self.children) <= key < len(self.children):
                return self.children[key]
            return default
        found = self.all(key)
        if not found:
            return default
        return found[0] if len(found) == 1 else found

    def __getitem__(self, key: Union[str, int]) -> Any:
        return self.get(key)

    def exists(self, key: Union[str, int]) -> bool:
        if isinstance(key, int):
            return -len(self.children) <= key < len(self.children)
        return any(c.name == key for c in self.children)

    __contains__ = exists

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator["MatchNode"]:
        return iter(self.children)

    def keys(self) -> List[str]:
        """Distinct child names, in order of first appearance."""
        return list(dict.fromkeys(c.name for c in self.children))

    def values(self) -> List[Any]:
        return [self.get(k) for k in self.keys()]

    def items(self) -> List[Tuple[str, Any]]:
        return [(k, self.get(k)) for k in self.keys()]

    def pairs(self) -> List[Tuple[str, "MatchNode"]]:
        """(name, child) for every child, repeats included."""
        return [(c.name, c) for c in self.children]

    def caps(self) -> Dict[str, Any]:
        return dict(self.items())

    # ---- traversal ----
    def walk(self) -> Iterator["MatchNode"]:
        """Post-order: children before their parent."""
        for c in self.children:
            yield from c.walk()
        yield self

    def pretty(self, indent: int = 0) -> str:
        pad = "  " * indent
        sym = f":sym<{self.symbol}>" if self.symbol is not None else ""
        made = f" => {self._made!r}" if self.has_made else ""
        lines = [f"{pad}{self.name}{sym} {self.value!r}{made}"]
        for c in self.children:
            lines.append(c.pretty(indent + 1))
        return "\n".join(lines)
