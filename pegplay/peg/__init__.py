# pegplay/peg/__init__.py
"""Executable grammar.

This package provides:
- AST nodes the VM executes (built from the grammar rule tree)
- The builtin rule table (ASCII classes, Unicode properties, stack ops)
- An optimizer that rewrites rules into their executable form
- A backtracking VM with pest-compatible error tracking

It never imports pegplay.grammar; the front-end depends on it, not the
other way round.
"""

from .ast import (
    Literal, Insensitive, Range, Any, Property, Ref, PeekSlice, And, Not,
    Repeat, Bounded, Seq, Choice, Push, Tagged, Skip, Rule, RuleType,
)
from .builtins import KEYWORDS, BUILTINS, is_builtin
from .optimizer import optimize
from .runtime import CompiledGrammar, GrammarRunner
from .engine import Vm
