# protogram/errors.py
"""Fatal error types.

A failed match is *not* an error: it is reported with the falsy ``NO_MATCH``
value (see ``protogram.peg.match``). Everything here aborts grammar
construction or the current parse call.
"""

from __future__ import annotations
from typing import Optional, Tuple


def _line_bounds(src: str, pos: int) -> Tuple[int, int]:
    """Return the [start, end) range of the line containing pos."""
    start = src.rfind("\n", 0, pos)
    start = 0 if start < 0 else start + 1
    end = src.find("\n", pos)
    end = len(src) if end < 0 else end
    return start, end


def line_col(src: str, pos: int) -> Tuple[int, int]:
    """1-based (line, col) of an absolute offset."""
    line = src.count("\n", 0, pos) + 1
    start, _ = _line_bounds(src, pos)
    return line, pos - start + 1


def caret_snippet(src: str, pos: int) -> str:
    """Source line around pos with a caret under the offending column."""
    start, end = _line_bounds(src, pos)
    line = src[start:end]
    caret = " " * (pos - start) + "^"
    return f"{line}\n{caret}"


class GrammarError(SyntaxError):
    """Base class for problems with a grammar definition."""

    def __init__(self, msg: str, rule: Optional[str] = None):
        super().__init__(msg)
        self.rule = rule


class UnknownRule(GrammarError):
    def __init__(self, rule: str, referrer: Optional[str] = None):
        if referrer:
            msg = f"undefined rule '{rule}' referenced from '{referrer}'"
        else:
            msg = f"undefined rule '{rule}'"
        super().__init__(msg, rule)
        self.referrer = referrer


class DuplicateSymbol(GrammarError):
    def __init__(self, group: str, symbol: str):
        super().__init__(f"proto '{group}' declares symbol <{symbol}> more than once", group)
        self.symbol = symbol


class MalformedRule(GrammarError):
    def __init__(self, rule: Optional[str], detail: str):
        where = f"rule '{rule}'" if rule else "grammar"
        super().__init__(f"malformed {where}: {detail}", rule)
        self.detail = detail


class GrammarSyntaxError(GrammarError):
    """The grammar notation could not be read."""

    def __init__(self, msg: str, src: str, pos: int):
        line, col = line_col(src, pos)
        self.pos = pos
        self.line = line
        self.col = col
        self.snippet = caret_snippet(src, pos)
        super().__init__(f"grammar syntax error at {line}:{col}: {msg}\n{self.snippet}")


class ParseCancelled(RuntimeError):
    """Step budget exhausted, or the caller's cancel hook asked to stop."""

    def __init__(self, rule: str, pos: int, steps: int, reason: str = "step budget exhausted"):
        super().__init__(f"parse cancelled in '{rule}' at offset {pos} after {steps} steps ({reason})")
        self.rule = rule
        self.pos = pos
        self.steps = steps
        self.reason = reason


class ActionError(RuntimeError):
    """An action callback raised while binding a match tree."""

    def __init__(self, rule: str, fragment: str):
        if len(fragment) > 40:
            fragment = fragment[:37] + "..."
        super().__init__(f"action for '{rule}' failed on {fragment!r}")
        self.rule = rule
        self.fragment = fragment
