# protogram/peg/parser.py
from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..errors import GrammarSyntaxError, MalformedRule
from .ast import (
    Literal, CharClass, Any, Pattern, Ref, Sym, Backref, And, Not, Repeat, Seq, Choice,
    RuleDef, ProtoAlt, ProtoGroup, Grammar, Node, RULE_KINDS,
)

# Grammar notation we parse:
#   grammar  := ("grammar" IDENT ";")? decl*
#   decl     := "proto" KIND IDENT ";"
#             | KIND IDENT ":sym<" SYMBOL ">" ("=" expr)? ";"
#             | "anchored"? KIND IDENT "=" expr ";"
#   KIND     := "token" | "rule" | "regex"
#   expr     := seq ("|" seq)*
#   seq      := (prefix)*
#   prefix   := ("&"|"!")? suffix
#   suffix   := primary ("?"|"*"|"+")?
#   primary  := IDENT | "<" IDENT ">" | "<." IDENT ">" | "<sym>" | "$" IDENT
#             | literal | class | "." | "/" regex "/" flags | "(" expr ")"
#
#   literal  := ' ... ' | " ... "  (supports escapes \n \r \t \\ \" \' \xHH \uXXXX)
#   class    := "[" "^"? class_items "]"
#   comments/space allowed between items:
#       - whitespace
#       - "#" ... endline
#       - "//" ... endline
#       - "/*" ... "*/"

_SEQ_STOP = ")|;"


class _TS:
    def __init__(self, src: str):
        self.s = src
        self.i = 0
        self.n = len(src)

    def _peek(self, k: int = 0) -> Optional[str]:
        j = self.i + k
        if j >= self.n:
            return None
        return self.s[j]

    def _starts(self, lit: str) -> bool:
        return self.s.startswith(lit, self.i)

    def _bump(self, n: int = 1) -> None:
        self.i += n

    def _eof(self) -> bool:
        return self.i >= self.n

    def _err(self, msg: str, at: Optional[int] = None) -> GrammarSyntaxError:
        return GrammarSyntaxError(msg, self.s, self.i if at is None else at)

    def _skip_ws(self) -> None:
        while not self._eof():
            if self._starts("/*"):
                j = self.s.find("*/", self.i + 2)
                if j == -1:
                    raise self._err("unclosed block comment")
                self.i = j + 2
                continue
            ch = self._peek()
            if ch in " \t\r\n":
                self._bump(1)
                continue
            if self._starts("//") or ch == "#":
                while not self._eof() and self._peek() != "\n":
                    self._bump(1)
                continue
            break

    def _eat(self, lit: str) -> None:
        self._skip_ws()
        if not self._starts(lit):
            raise self._err(f"expected {lit!r}")
        self._bump(len(lit))

    def _try_eat(self, lit: str) -> bool:
        self._skip_ws()
        if self._starts(lit):
            self._bump(len(lit))
            return True
        return False

    def _is_ident_start(self, ch: Optional[str]) -> bool:
        if ch is None:
            return False
        return ch.isalpha() or ch == "_"

    def _is_ident_continue(self, ch: Optional[str]) -> bool:
        if ch is None:
            return False
        return ch.isalnum() or ch == "_"

    def _ident(self) -> str:
        self._skip_ws()
        ch = self._peek()
        if not self._is_ident_start(ch):
            raise self._err("expected IDENT")
        start = self.i
        self._bump(1)
        while self._is_ident_continue(self._peek()):
            self._bump(1)
        return self.s[start:self.i]

    def _hexval(self, ch: Optional[str]) -> int:
        if ch is not None:
            if "0" <= ch <= "9": return ord(ch) - ord("0")
            if "a" <= ch <= "f": return ord(ch) - ord("a") + 10
            if "A" <= ch <= "F": return ord(ch) - ord("A") + 10
        raise self._err("invalid hex digit")

    def _read_escape(self) -> str:
        c = self._peek()
        if c is None:
            raise self._err("unterminated escape")
        if c in "'\"\\": self._bump(1); return c
        if c == "n": self._bump(1); return "\n"
        if c == "r": self._bump(1); return "\r"
        if c == "t": self._bump(1); return "\t"
        if c in "xu":
            self._bump(1)
            val = 0
            for _ in range(2 if c == "x" else 4):
                val = (val << 4) + self._hexval(self._peek())
                self._bump(1)
            return chr(val)
        # fallback: literal next char
        self._bump(1)
        return c

    def _literal(self) -> Literal:
        self._skip_ws()
        q = self._peek()
        if q not in ("'", '"'):
            raise self._err("expected quote")
        start = self.i
        self._bump(1)
        out = []
        while not self._eof():
            c = self._peek()
            if c == q:
                self._bump(1)
                break
            if c == "\\":
                self._bump(1)
                out.append(self._read_escape())
            else:
                out.append(c)
                self._bump(1)
        else:
            raise self._err("unterminated string", start)
        return Literal("".join(out))

    def _class(self) -> CharClass:
        self._eat("[")
        start = self.i - 1
        neg = False
        if self._peek() == "^":
            self._bump(1)
            neg = True
        ranges: List[Tuple[int, int]] = []
        singles: List[str] = []

        def _read_char_in_class() -> str:
            if self._eof():
                raise self._err("unterminated char class", start)
            c = self._peek()
            if c == "\\":
                self._bump(1)
                return self._read_escape()
            self._bump(1)
            return c

        while True:
            if self._eof():
                raise self._err("unterminated char class", start)
            if self._peek() == "]":
                self._bump(1)
                break
            a = _read_char_in_class()
            if self._peek() == "-" and self._peek(1) not in (None, "]"):
                self._bump(1)
                b = _read_char_in_class()
                if ord(a) > ord(b):
                    a, b = b, a
                ranges.append((ord(a), ord(b)))
            else:
                singles.append(a)

        return CharClass(negated=neg, ranges=tuple(ranges), singles=tuple(singles))

    def _pattern(self) -> Pattern:
        self._eat("/")
        start = self.i - 1
        out = []
        in_class = False
        while True:
            c = self._peek()
            if c is None or c == "\n":
                raise self._err("unterminated /pattern/", start)
            if c == "\\" and self._peek(1) is not None:
                nxt = self._peek(1)
                out.append(nxt if nxt == "/" else c + nxt)
                self._bump(2)
                continue
            self._bump(1)
            if c == "[":
                in_class = True
            elif c == "]":
                in_class = False
            elif c == "/" and not in_class:
                break
            out.append(c)
        flags_start = self.i
        while self._peek() is not None and self._peek() in "imsxa":
            self._bump(1)
        if not out:
            raise self._err("empty /pattern/", start)
        return Pattern("".join(out), self.s[flags_start:self.i])

    def _angle(self) -> Node:
        self._eat("<")
        if self._try_eat("."):
            node: Node = Ref(self._ident(), capture=False)
        else:
            name = self._ident()
            node = Sym() if name == "sym" else Ref(name)
        self._eat(">")
        return node

    # --- recursive descent for declarations ---

    def parse_grammar(self) -> Grammar:
        order: List[str] = []
        rules: Dict[str, RuleDef] = {}
        protos: Dict[str, ProtoGroup] = {}
        alts: Dict[str, List[ProtoAlt]] = {}
        gname: Optional[str] = None

        self._skip_ws()
        if self._starts("grammar") and not self._is_ident_continue(self._peek(len("grammar"))):
            self._ident()
            gname = self._ident()
            self._eat(";")

        while True:
            self._skip_ws()
            if self._eof():
                break
            at = self.i
            word = self._ident()
            anchored = word == "anchored"
            if anchored:
                word = self._ident()
            if word == "proto":
                if anchored:
                    raise self._err("a proto cannot be anchored", at)
                kind = self._kind(self._ident())
                name = self._ident()
                self._eat(";")
                if name in protos or name in rules:
                    raise self._err(f"duplicate rule '{name}'", at)
                protos[name] = ProtoGroup(name, (), kind)
                order.append(name)
                continue

            kind = self._kind(word)
            name = self._ident()
            if self._try_eat(":sym<"):
                if anchored:
                    raise self._err("an alternative cannot be anchored", at)
                sym = self._symbol()
                if self._try_eat("="):
                    body = self._parse_expr()
                else:
                    body = Sym()
                self._eat(";")
                alts.setdefault(name, []).append(ProtoAlt(sym, body, kind))
                continue

            self._eat("=")
            expr = self._parse_expr()
            self._eat(";")
            if name in rules or name in protos:
                raise self._err(f"duplicate rule '{name}'", at)
            rules[name] = RuleDef(name, expr, kind, anchored)
            order.append(name)

        for name, extra in alts.items():
            if name not in protos:
                raise MalformedRule(name, "alternative declared without 'proto'")
            protos[name] = protos[name].with_alts(extra)
        if not order:
            raise self._err("empty grammar")

        table = {n: (protos[n] if n in protos else rules[n]) for n in order}
        return Grammar(table, name=gname)

    def _kind(self, word: str) -> str:
        if word not in RULE_KINDS:
            raise self._err(f"expected one of {', '.join(RULE_KINDS)}, got '{word}'", self.i - len(word))
        return word

    def _symbol(self) -> str:
        start = self.i
        j = self.s.find(">", self.i)
        if j == -1 or j == self.i:
            raise self._err("expected SYMBOL>", start)
        sym = self.s[self.i:j]
        if any(c.isspace() for c in sym):
            raise self._err("symbol may not contain whitespace", start)
        self.i = j + 1
        return sym

    # --- recursive descent for expressions ---

    def _parse_expr(self) -> Node:
        alts = [self._parse_seq()]
        while self._try_eat("|"):
            alts.append(self._parse_seq())
        if len(alts) == 1:
            return alts[0]
        return Choice(tuple(alts))

    def _parse_seq(self) -> Node:
        items: List[Node] = []
        while True:
            self._skip_ws()
            ch = self._peek()
            if ch is None or ch in _SEQ_STOP:
                break
            items.append(self._parse_prefix())
        if len(items) == 1:
            return items[0]
        return Seq(tuple(items))  # may be empty (epsilon)

    def _parse_prefix(self) -> Node:
        if self._try_eat("&"):
            return And(self._parse_suffix())
        if self._try_eat("!"):
            return Not(self._parse_suffix())
        return self._parse_suffix()

    def _parse_suffix(self) -> Node:
        node = self._parse_primary()
        # no whitespace between an atom and its quantifier
        ch = self._peek()
        if ch is not None and ch in "?*+":
            self._bump(1)
            return Repeat(node, ch)
        return node

    def _parse_primary(self) -> Node:
        self._skip_ws()
        ch = self._peek()
        if ch == "(":
            self._bump(1)
            e = self._parse_expr()
            self._eat(")")
            return e
        if ch == ".":
            self._bump(1)
            return Any()
        if ch in ("'", '"'):
            return self._literal()
        if ch == "[":
            return self._class()
        if ch == "/":
            return self._pattern()
        if ch == "<":
            return self._angle()
        if ch == "$":
            self._bump(1)
            return Backref(self._ident())
        if not self._is_ident_start(ch):
            raise self._err(f"unexpected {ch!r}")
        return Ref(self._ident())


def parse_grammar(src: str) -> Grammar:
    """Parse grammar notation into a validated Grammar."""
    ts = _TS(src)
    g = ts.parse_grammar()
    logger.debug("parsed grammar {} ({} rules)", g.name or "<anon>", len(g))
    return g
