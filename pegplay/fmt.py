# pegplay/fmt.py
"""Grammar source formatter.

    number=@{ASCII_DIGIT +}        ->  number = @{ ASCII_DIGIT+ }

    expr = { a          ->  expr = {
      |b ~c }                     a
                              | b ~ c
                            }

Works on the token stream (comments kept), after checking that the text
parses, so formatting never changes what the grammar means.
"""

from __future__ import annotations
from typing import List, Optional
from .grammar.parser import Tok, parse_grammar, scan

_SPACED = ("TILDE", "OR", "EQ")
_COMMENTS = ("COMMENT", "MCOMMENT")
_MODIFIERS = ("AT", "DOLLAR", "BANG")


def _join(toks: List[Tok]) -> str:
    out: List[str] = []
    prev: Optional[Tok] = None
    for t in toks:
        if prev is not None and (t.kind in _SPACED or prev.kind in _SPACED):
            out.append(" ")
        out.append(t.lexeme)
        prev = t
    return "".join(out)


class _Formatter:
    def __init__(self, src: str):
        self.src = src
        self.toks = scan(src, keep_comments=True)
        self.i = 0
        self.out: List[str] = []

    def _gap(self, a: Tok, b: Tok) -> str:
        return self.src[a.end:b.start]

    # ---- top level ----
    def run(self) -> str:
        prev: Optional[Tok] = None
        while self.toks[self.i].kind != "EOF":
            t = self.toks[self.i]
            gap = self._gap(prev, t) if prev is not None else ""
            if t.kind in _COMMENTS:
                self.i += 1
                if prev is not None and "\n" not in gap and self.out:
                    self.out[-1] += " " + t.lexeme
                else:
                    self._separate(prev, gap)
                    self.out.append(t.lexeme)
                prev = t
                continue
            self._separate(prev, gap)
            prev = self._rule()
        if not self.out:
            return ""
        return "\n".join(self.out) + "\n"

    def _separate(self, prev: Optional[Tok], gap: str) -> None:
        if prev is not None and gap.count("\n") > 1:
            self.out.append("")

    # ---- rules ----
    def _rule(self) -> Tok:
        head: List[Tok] = []
        header_comments: List[str] = []
        while True:
            t = self.toks[self.i]
            self.i += 1
            if t.kind in _COMMENTS:
                header_comments.append(t.lexeme)
                continue
            head.append(t)
            if t.kind == "LBRACE":
                break
        open_tok = head[-1]

        body: List[Tok] = []
        depth = 1
        while True:
            t = self.toks[self.i]
            self.i += 1
            if t.kind == "LBRACE":
                depth += 1
            elif t.kind == "RBRACE":
                depth -= 1
                if depth == 0:
                    close_tok = t
                    break
            body.append(t)

        self.out.extend(header_comments)
        name = head[0].lexeme
        modifier = ""
        if len(head) > 3:
            modifier = head[2].lexeme

        multiline = (
            "\n" in self.src[open_tok.end:close_tok.start]
            or any(t.kind in _COMMENTS for t in body)
        )
        if body and body[0].kind == "OR":
            body = body[1:]
        if not multiline:
            self.out.append(f"{name} = {modifier}{{ {_join(body)} }}")
            return close_tok

        self.out.append(f"{name} = {modifier}{{")
        self.out.extend(self._body_lines(body, open_tok))
        self.out.append("}")
        return close_tok

    def _body_lines(self, body: List[Tok], open_tok: Tok) -> List[str]:
        """One top-level alternative per line; comments on their own line
        unless they trail code on the same source line."""
        lines: List[str] = []
        cur: List[Tok] = []
        prefix = "    "
        depth = 0
        prev = open_tok
        for t in body:
            if t.kind in _COMMENTS:
                if cur and "\n" not in self._gap(prev, t):
                    lines.append(prefix + _join(cur) + " " + t.lexeme)
                    cur = []
                    if prefix == "  | ":
                        prefix = "    "
                else:
                    if cur:
                        lines.append(prefix + _join(cur))
                        cur = []
                        prefix = "    "
                    lines.append("    " + t.lexeme)
            elif t.kind == "OR" and depth == 0:
                if cur:
                    lines.append(prefix + _join(cur))
                    cur = []
                prefix = "  | "
            else:
                if t.kind == "LPAREN":
                    depth += 1
                elif t.kind == "RPAREN":
                    depth -= 1
                cur.append(t)
            prev = t
        if cur:
            lines.append(prefix + _join(cur))
        return lines


def format_grammar(text: str) -> str:
    """Canonical layout of `text`. Raises GrammarSyntaxError if it does not
    parse."""
    parse_grammar(text)
    return _Formatter(text).run()
