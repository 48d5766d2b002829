"""pegplay grammar parser
- rule       : NAME = [_ @ $ !]{ expr }
- expr       : [|] term ((~ | "|") term)*       (~ binds tighter than |)
- term       : [#tag =] (& | !)* node postfix*
- node       : ( expr ) | PUSH( expr ) | PEEK[a..b] | NAME | "str" | ^"str" | 'a'..'z'
- postfix    : ? * + {n} {n,} {,m} {n,m}
- comments   : // line (/// and //! included), /* block */ (nestable)
"""

from __future__ import annotations
import regex as re
from dataclasses import dataclass
from typing import List, Optional, Sequence
from .ast import *
from ..diagnostics import enumerate_rules
from ..errors import GrammarSyntaxError, Issue

# ---- Lexer tokens ----
_TOKEN_SPEC = [
    ("WS",       r"[ \t\f\r\n]+"),
    ("COMMENT",  r"//[^\r\n]*"),
    ("MCOMMENT", r"/\*(?:[^*/]|\*(?!/)|/(?!\*)|(?&MCOMMENT))*\*/"),
    ("RANGE",    r"\.\."),
    ("STRING",   r'"(?:\\.|[^"\\])*"'),
    ("CHAR",     r"'(?:\\(?:u\{[0-9A-Fa-f]{1,6}\}|x[0-9A-Fa-f]{2}|.)|[^'\\\r\n])'"),
    ("NUMBER",   r"[0-9]+"),
    ("IDENT",    r"[A-Za-z_][A-Za-z0-9_]*"),
    ("EQ",       r"="),
    ("TILDE",    r"~"),
    ("OR",       r"\|"),
    ("QMARK",    r"\?"),
    ("STAR",     r"\*"),
    ("PLUS",     r"\+"),
    ("AMP",      r"&"),
    ("BANG",     r"!"),
    ("AT",       r"@"),
    ("DOLLAR",   r"\$"),
    ("HASH",     r"#"),
    ("CARET",    r"\^"),
    ("LPAREN",   r"\("),
    ("RPAREN",   r"\)"),
    ("LBRACE",   r"\{"),
    ("RBRACE",   r"\}"),
    ("LBRACK",   r"\["),
    ("RBRACK",   r"\]"),
    ("COMMA",    r","),
    ("MINUS",    r"-"),
]
MASTER_RE = re.compile("|".join(f"(?P<{n}>{p})" for n, p in _TOKEN_SPEC), re.S)

TRIVIA = ("WS", "COMMENT", "MCOMMENT")

# display names used in "expected ..." messages
KIND_NAMES = {
    "IDENT":  "identifier",
    "STRING": "string",
    "CHAR":   "character",
    "NUMBER": "number",
    "EOF":    "end-of-input",
    "RANGE":  "`..`",
    "EQ":     "`=`",
    "TILDE":  "`~`",
    "OR":     "`|`",
    "QMARK":  "`?`",
    "STAR":   "`*`",
    "PLUS":   "`+`",
    "AMP":    "`&`",
    "BANG":   "`!`",
    "AT":     "`@`",
    "DOLLAR": "`$`",
    "HASH":   "`#`",
    "CARET":  "`^`",
    "LPAREN": "`(`",
    "RPAREN": "`)`",
    "LBRACE": "`{`",
    "RBRACE": "`}`",
    "LBRACK": "`[`",
    "RBRACK": "`]`",
    "COMMA":  "`,`",
    "MINUS":  "`-`",
}

@dataclass
class Tok:
    kind: str
    lexeme: str
    start: int
    end: int


def _syntax_error(message: str, pos: int) -> GrammarSyntaxError:
    return GrammarSyntaxError(Issue(message, pos))


def scan(src: str, keep_comments: bool = False) -> List[Tok]:
    """Tokenize grammar source. Whitespace is dropped; comments are dropped
    unless `keep_comments` (the formatter needs them)."""
    toks: List[Tok] = []
    i = 0
    n = len(src)
    while i < n:
        m = MASTER_RE.match(src, i)
        if not m:
            raise _syntax_error(_scan_failure(src, i), i)
        kind = m.lastgroup or ""
        if kind == "WS" or (kind in TRIVIA and not keep_comments):
            i = m.end()
            continue
        toks.append(Tok(kind, m.group(0), i, m.end()))
        i = m.end()
    toks.append(Tok("EOF", "", n, n))
    return toks


def _scan_failure(src: str, i: int) -> str:
    if src.startswith("/*", i):
        return "unterminated block comment"
    ch = src[i]
    if ch == '"':
        return "unterminated string"
    if ch == "'":
        return "invalid character literal"
    return f"unexpected character {ch!r}"


# ---- escapes ----
_SIMPLE_ESCAPES = {
    '"': '"', "'": "'", "\\": "\\",
    "n": "\n", "r": "\r", "t": "\t", "0": "\0",
}

def _unescape(body: str, base: int) -> str:
    """Resolve escapes in a literal body; `base` is the body's index in the
    grammar source, used for error positions."""
    out: List[str] = []
    i = 0
    n = len(body)
    while i < n:
        c = body[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= n:
            raise _syntax_error("invalid escape sequence", base + i)
        e = body[i + 1]
        if e in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[e])
            i += 2
            continue
        if e == "x":
            digits = body[i + 2:i + 4]
            if len(digits) != 2 or not all(d in "0123456789abcdefABCDEF" for d in digits):
                raise _syntax_error("invalid escape sequence", base + i)
            out.append(chr(int(digits, 16)))
            i += 4
            continue
        if e == "u" and body.startswith("{", i + 2):
            close = body.find("}", i + 3)
            digits = body[i + 3:close] if close != -1 else ""
            if (not 1 <= len(digits) <= 6
                    or not all(d in "0123456789abcdefABCDEF" for d in digits)
                    or int(digits, 16) > 0x10FFFF):
                raise _syntax_error("invalid escape sequence", base + i)
            out.append(chr(int(digits, 16)))
            i = close + 1
            continue
        raise _syntax_error("invalid escape sequence", base + i)
    return "".join(out)


def _string_value(tok: Tok) -> str:
    return _unescape(tok.lexeme[1:-1], tok.start + 1)


def _char_value(tok: Tok) -> str:
    value = _unescape(tok.lexeme[1:-1], tok.start + 1)
    if len(value) != 1:
        raise _syntax_error("invalid character literal", tok.start)
    return value


# ---- token stream ----
class _TS:
    def __init__(self, toks: List[Tok], src: str):
        self.toks = toks
        self.i = 0
        self.src = src

    def la(self, k: int = 0) -> Tok:
        j = min(self.i + k, len(self.toks) - 1)
        return self.toks[j]

    def prev(self) -> Tok:
        return self.toks[self.i - 1]

    def expected(self, kinds: Sequence[str]) -> GrammarSyntaxError:
        names = [KIND_NAMES.get(k, k) for k in kinds]
        return _syntax_error(f"expected {enumerate_rules(names)}", self.la().start)

    def eat(self, kind: str) -> Tok:
        t = self.la()
        if t.kind != kind:
            raise self.expected([kind])
        self.i += 1
        return t

    def match(self, kind: str) -> Optional[Tok]:
        if self.la().kind == kind:
            return self.eat(kind)
        return None

    def eat_any(self) -> Tok:
        t = self.la()
        self.i += 1
        return t


# ---- grammar ----
def parse_grammar(src: str) -> RuleTree:
    ts = _TS(scan(src), src)
    tree = RuleTree()
    while ts.la().kind != "EOF":
        if ts.la().kind != "IDENT":
            raise _syntax_error("expected rule", ts.la().start)
        tree.rules.append(_parse_rule(ts))
    return tree


def _parse_rule(ts: _TS) -> ParserRule:
    name_tok = ts.eat("IDENT")
    ts.eat("EQ")

    ty = RuleType.NORMAL
    t = ts.la()
    if (t.kind == "IDENT" and t.lexeme == "_") or t.kind in ("AT", "DOLLAR", "BANG"):
        ty = MODIFIERS[ts.eat_any().lexeme]
        open_tok = ts.eat("LBRACE")
    elif t.kind == "LBRACE":
        open_tok = ts.eat("LBRACE")
    else:
        raise _syntax_error("expected `_`, `@`, `$`, `!`, or `{`", t.start)

    expr = _parse_expr(ts, "RBRACE")
    close_tok = ts.eat("RBRACE")
    return ParserRule(
        name=name_tok.lexeme,
        ty=ty,
        expr=expr,
        span=Span(name_tok.start, name_tok.end),
        body_span=Span(open_tok.end, close_tok.start),
    )


def _span_of(nodes: Sequence[Expr]) -> Span:
    return Span(nodes[0].span.start, nodes[-1].span.end)  # type: ignore[union-attr]


def _parse_expr(ts: _TS, closer: str) -> Expr:
    ts.match("OR")  # leading '|' is allowed
    alts = [_parse_seq(ts)]
    while ts.match("OR"):
        alts.append(_parse_seq(ts))
    if ts.la().kind != closer:
        raise ts.expected(["TILDE", "OR", closer])
    if len(alts) == 1:
        return alts[0]
    return Choice(alts, _span_of(alts))


def _parse_seq(ts: _TS) -> Expr:
    items = [_parse_term(ts)]
    while ts.match("TILDE"):
        items.append(_parse_term(ts))
    if len(items) == 1:
        return items[0]
    return Seq(items, _span_of(items))


def _parse_term(ts: _TS) -> Expr:
    first = ts.la()
    tag: Optional[str] = None
    if ts.match("HASH"):
        tag = ts.eat("IDENT").lexeme
        ts.eat("EQ")

    prefixes: List[Tok] = []
    while ts.la().kind in ("AMP", "BANG"):
        prefixes.append(ts.eat_any())

    node = _parse_postfix(ts, _parse_node(ts))
    end = node.span.end  # type: ignore[union-attr]
    for p in reversed(prefixes):
        if p.kind == "AMP":
            node = PosPred(node, Span(p.start, end))
        else:
            node = NegPred(node, Span(p.start, end))
    if tag is not None:
        node = NodeTag(node, tag, Span(first.start, end))
    return node


_TERM_START = ["LPAREN", "AMP", "BANG", "HASH", "IDENT", "STRING", "CARET", "CHAR"]

def _parse_node(ts: _TS) -> Expr:
    t = ts.la()
    if t.kind == "LPAREN":
        ts.eat("LPAREN")
        inner = _parse_expr(ts, "RPAREN")
        ts.eat("RPAREN")
        return inner

    if t.kind == "IDENT":
        if t.lexeme == "PUSH" and ts.la(1).kind == "LPAREN":
            ts.eat("IDENT")
            ts.eat("LPAREN")
            inner = _parse_expr(ts, "RPAREN")
            close = ts.eat("RPAREN")
            return Push(inner, Span(t.start, close.end))
        if t.lexeme == "PEEK" and ts.la(1).kind == "LBRACK":
            return _parse_peek_slice(ts)
        ts.eat("IDENT")
        return Ident(t.lexeme, Span(t.start, t.end))

    if t.kind == "STRING":
        ts.eat("STRING")
        return Str(_string_value(t), Span(t.start, t.end))

    if t.kind == "CARET":
        ts.eat("CARET")
        s = ts.eat("STRING")
        return Insens(_string_value(s), Span(t.start, s.end))

    if t.kind == "CHAR":
        ts.eat("CHAR")
        ts.eat("RANGE")
        hi = ts.eat("CHAR")
        return Range(_char_value(t), _char_value(hi), Span(t.start, hi.end))

    raise ts.expected(_TERM_START)


def _parse_int(ts: _TS) -> Optional[str]:
    """Optional signed integer inside PEEK[..]."""
    if ts.la().kind == "MINUS":
        minus = ts.eat("MINUS")
        num = ts.eat("NUMBER")
        return minus.lexeme + num.lexeme
    if ts.la().kind == "NUMBER":
        return ts.eat("NUMBER").lexeme
    return None


def _parse_peek_slice(ts: _TS) -> PeekSlice:
    peek = ts.eat("IDENT")
    ts.eat("LBRACK")
    start = _parse_int(ts)
    if ts.la().kind != "RANGE":
        raise ts.expected(["NUMBER", "RANGE"] if start is None else ["RANGE"])
    ts.eat("RANGE")
    end = _parse_int(ts)
    if ts.la().kind != "RBRACK":
        raise ts.expected(["NUMBER", "RBRACK"] if end is None else ["RBRACK"])
    close = ts.eat("RBRACK")
    return PeekSlice(start, end, Span(peek.start, close.end))


def _parse_postfix(ts: _TS, node: Expr) -> Expr:
    start = node.span.start  # type: ignore[union-attr]
    while True:
        t = ts.la()
        if t.kind == "QMARK":
            ts.eat_any()
            node = Repeat(node, Suffix.OPT, Span(start, t.end))
        elif t.kind == "STAR":
            ts.eat_any()
            node = Repeat(node, Suffix.STAR, Span(start, t.end))
        elif t.kind == "PLUS":
            ts.eat_any()
            node = Repeat(node, Suffix.PLUS, Span(start, t.end))
        elif t.kind == "LBRACE":
            node = _parse_bounds(ts, node, start)
        else:
            return node


def _parse_bounds(ts: _TS, node: Expr, start: int) -> Bounded:
    """{n} | {n,} | {,m} | {n,m}"""
    ts.eat("LBRACE")
    lo: Optional[str] = None
    hi: Optional[str] = None
    if ts.la().kind == "NUMBER":
        lo = ts.eat("NUMBER").lexeme
        if ts.match("COMMA"):
            if ts.la().kind == "NUMBER":
                hi = ts.eat("NUMBER").lexeme
            elif ts.la().kind != "RBRACE":
                raise ts.expected(["NUMBER", "RBRACE"])
        elif ts.la().kind == "RBRACE":
            hi = lo
        else:
            raise ts.expected(["COMMA", "RBRACE"])
    elif ts.match("COMMA"):
        hi = ts.eat("NUMBER").lexeme
    else:
        raise ts.expected(["NUMBER", "COMMA"])
    close = ts.eat("RBRACE")
    return Bounded(node, lo, hi, Span(start, close.end))
