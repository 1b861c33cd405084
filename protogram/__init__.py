"""protogram: grammars with ordered proto dispatch and post-order actions.

    from protogram import Program

    rest = Program.from_source('''
        token TOP     = '/' subject '/' command ('/' data)? ;
        token subject = /\\w+/ ;
        proto token command ;
        token command:sym<create> ;
        token command:sym<update> ;
        token data    = .* ;
    ''')
    m = rest.parse("/product/update/7/notify", actions={"data": lambda m: str(m).split("/")})
    m["command"].symbol   # 'update'
    m["data"].made        # ['7', 'notify']
"""

from . import log
from .config import EngineSettings, settings
from .errors import (
    GrammarError, UnknownRule, DuplicateSymbol, MalformedRule, GrammarSyntaxError,
    ParseCancelled, ActionError,
)
from .log import enable_logging, disable_logging
from .peg import (
    Grammar, RuleDef, ProtoAlt, ProtoGroup, MatchNode, NoMatch, NO_MATCH,
    Engine, ActionTable, bind_actions, parse_grammar, Program, build,
)

__version__ = "0.1.0"
