# pegplay/pipeline.py
"""Grammar text -> CompiledGrammar, or diagnostics.

Stages (the first failing stage ends the pipeline):

    parse_grammar   meta-syntax                  -> exactly one diagnostic
    validate_rules  names / keywords / refs      -> one per problem
    build_ast       bounds, recursion, loops     -> one per problem
    optimize        total                        -> CompiledGrammar
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from .diagnostics import CompileDiagnostic, encode_compile_diagnostic
from .errors import GrammarConstructionError, GrammarSyntaxError, Issue
from .grammar.builder import build_ast
from .grammar.parser import parse_grammar
from .grammar.validator import validate_rules
from .peg.optimizer import optimize
from .peg.runtime import CompiledGrammar

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    grammar: Optional[CompiledGrammar] = None
    diagnostics: List[CompileDiagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.grammar is not None


def _fail(stage: str, issues: Sequence[Issue], source: str) -> CompileResult:
    logger.debug("%s failed with %d issue(s)", stage, len(issues))
    return CompileResult(None, [encode_compile_diagnostic(i, source) for i in issues])


def compile_grammar(grammar_text: str) -> CompileResult:
    try:
        tree = parse_grammar(grammar_text)
    except GrammarSyntaxError as e:
        return _fail("parse", e.issues, grammar_text)
    logger.debug("parsed %d rule(s)", len(tree.rules))

    issues = validate_rules(tree)
    if issues:
        return _fail("validate", issues, grammar_text)

    try:
        rules = build_ast(tree)
    except GrammarConstructionError as e:
        return _fail("build", e.issues, grammar_text)
    logger.debug("built %d rule(s)", len(rules))

    grammar = optimize(rules)
    logger.debug("optimized grammar: %s", ", ".join(grammar.rule_names()))
    return CompileResult(grammar, [])
