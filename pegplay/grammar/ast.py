# pegplay/grammar/ast.py
"""Grammar rule tree, as produced by the meta-syntax parser.

Every node keeps the char span it was parsed from so that validation and
AST building can point diagnostics at the exact source text. Repetition
bounds and PEEK slice bounds are kept as written (digits) and converted
by the builder.
"""

from __future__     import annotations
from dataclasses    import dataclass, field
from typing         import List, Optional, Union
from ..peg.ast      import RuleType

@dataclass(frozen=True)
class Span:
    start: int
    end: int

MODIFIERS = {
    "_": RuleType.SILENT,
    "@": RuleType.ATOMIC,
    "$": RuleType.COMPOUND_ATOMIC,
    "!": RuleType.NON_ATOMIC,
}

class Suffix:
    OPT  = "?"
    STAR = "*"
    PLUS = "+"

# ---- terminals ----

@dataclass
class Str:
    text: str       # unescaped
    span: Optional[Span] = None

@dataclass
class Insens:
    """^"text", matched case-insensitively"""
    text: str
    span: Optional[Span] = None

@dataclass
class Range:
    lo: str
    hi: str
    span: Optional[Span] = None

@dataclass
class Ident:
    name: str
    span: Optional[Span] = None

@dataclass
class PeekSlice:
    """PEEK[start..end]; bounds are signed integer text or None"""
    start: Optional[str]
    end: Optional[str]
    span: Optional[Span] = None

# ---- operators ----

@dataclass
class PosPred:
    node: "Expr"
    span: Optional[Span] = None

@dataclass
class NegPred:
    node: "Expr"
    span: Optional[Span] = None

@dataclass
class Seq:
    items: List["Expr"]
    span: Optional[Span] = None

@dataclass
class Choice:
    alts: List["Expr"]
    span: Optional[Span] = None

@dataclass
class Repeat:
    node: "Expr"
    kind: str       # Suffix
    span: Optional[Span] = None

@dataclass
class Bounded:
    """e{n}, e{n,}, e{,m}, e{n,m}. `{n}` is stored as lo == hi == n."""
    node: "Expr"
    lo: Optional[str]
    hi: Optional[str]
    span: Optional[Span] = None

@dataclass
class Push:
    node: "Expr"
    span: Optional[Span] = None

@dataclass
class NodeTag:
    node: "Expr"
    tag: str
    span: Optional[Span] = None

Expr = Union[Str, Insens, Range, Ident, PeekSlice, PosPred, NegPred,
             Seq, Choice, Repeat, Bounded, Push, NodeTag]

@dataclass
class ParserRule:
    name: str
    ty: str                 # RuleType
    expr: Expr
    span: Optional[Span] = None         # rule name
    body_span: Optional[Span] = None    # between the braces

@dataclass
class RuleTree:
    rules: List[ParserRule] = field(default_factory=list)

    def names(self) -> List[str]:
        return [r.name for r in self.rules]

    def by_name(self) -> dict:
        """First definition wins for duplicated names."""
        out: dict = {}
        for r in self.rules:
            out.setdefault(r.name, r)
        return out


def children(expr: Expr) -> List[Expr]:
    if isinstance(expr, Seq):
        return list(expr.items)
    if isinstance(expr, Choice):
        return list(expr.alts)
    if isinstance(expr, (PosPred, NegPred, Repeat, Bounded, Push, NodeTag)):
        return [expr.node]
    return []


def walk(expr: Expr):
    """Pre-order traversal of an expression."""
    yield expr
    for c in children(expr):
        yield from walk(c)
