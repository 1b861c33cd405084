# protogram/peg/proto.py
"""Proto dispatch.

A proto owns an ordered list of ``name:sym<symbol>`` alternatives. They are
tried in declaration order at the same offset and the first one that matches
wins. There is deliberately no longest-match rule: grammars rely on the
declaration order to disambiguate.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Optional, Tuple

from loguru import logger

from .ast import ProtoGroup
from .match import MatchNode

if TYPE_CHECKING:
    from .engine import Engine, ParseState


def resolve_group(engine: "Engine", state: "ParseState", group: ProtoGroup,
                  pos: int) -> Optional[Tuple[MatchNode, str]]:
    """Return (node, symbol) for the first matching alternative, or None."""
    from .engine import Frame

    text = state.text
    for alt in group.alts:
        if alt.sole_sym:
            # body is just <sym>: keep the symbol text as a leaf capture
            start = engine.skip_ws(text, pos) if alt.skips_whitespace else pos
            state.reached(start)
            if not text.startswith(alt.symbol, start):
                continue
            end = start + len(alt.symbol)
            leaf = MatchNode("sym", text, start, end)
            node = MatchNode(group.name, text, pos, end, [leaf], symbol=alt.symbol)
        else:
            frame = Frame(group.alt_name(alt), alt.skips_whitespace, alt.symbol)
            out = engine.eval_body(state, frame, alt.expr, pos)
            if out is None:
                continue
            node = MatchNode(group.name, text, pos, out[0], out[1], symbol=alt.symbol)
        if state.trace:
            logger.trace("{} resolved to <{}> @ {}", group.name, alt.symbol, pos)
        return node, alt.symbol
    return None
