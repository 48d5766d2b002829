# pegplay/peg/ast.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Optional, Union

# ---- Executable AST node definitions ----
# Produced by grammar.builder (spans dropped, bounds converted) and
# rewritten by peg.optimizer. Nodes are immutable and hashable.

@dataclass(frozen=True)
class Literal:
    text: str

@dataclass(frozen=True)
class Insensitive:
    text: str  # matched case-insensitively

@dataclass(frozen=True)
class Range:
    lo: str  # inclusive, single characters
    hi: str

@dataclass(frozen=True)
class Any:
    pass

@dataclass(frozen=True)
class Property:
    name: str  # Unicode property builtin, e.g. "UPPERCASE_LETTER"

@dataclass(frozen=True)
class Ref:
    name: str

@dataclass(frozen=True)
class PeekSlice:
    start: int
    end: Optional[int]

@dataclass(frozen=True)
class And:
    node: "Node"  # positive lookahead (&)

@dataclass(frozen=True)
class Not:
    node: "Node"  # negative lookahead (!)

@dataclass(frozen=True)
class Repeat:
    node: "Node"
    kind: str  # '?', '*', '+'

@dataclass(frozen=True)
class Bounded:
    node: "Node"
    lo: int
    hi: Optional[int]  # None = unbounded

@dataclass(frozen=True)
class Seq:
    items: Tuple["Node", ...]

@dataclass(frozen=True)
class Choice:
    alts: Tuple["Node", ...]

@dataclass(frozen=True)
class Push:
    node: "Node"

@dataclass(frozen=True)
class Tagged:
    node: "Node"
    tag: str

@dataclass(frozen=True)
class Skip:
    """Advance until one of `strings` starts, or to end of input."""
    strings: Tuple[str, ...]

Node = Union[Literal, Insensitive, Range, Any, Property, Ref, PeekSlice,
             And, Not, Repeat, Bounded, Seq, Choice, Push, Tagged, Skip]

class RuleType:
    NORMAL          = "normal"
    SILENT          = "silent"
    ATOMIC          = "atomic"
    COMPOUND_ATOMIC = "compound_atomic"
    NON_ATOMIC      = "non_atomic"

@dataclass(frozen=True)
class Rule:
    name: str
    ty: str
    expr: Node
