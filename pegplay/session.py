# pegplay/session.py
"""Execution session: owns the "last successfully compiled grammar" slot.

    s = Session()
    s.compile('number = { ASCII_DIGIT+ }')   # -> []
    s.run("number", "42")                    # -> '- number: "42"'
    s.run("number", "ab")                    # -> pretty JSON error

A failed compile never touches the slot; a run always sees one whole
grammar (the reference is swapped under a lock).
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from .diagnostics import CompileDiagnostic, ParseErrorRecord, encode_parse_error, format_error_json
from .errors import GrammarSyntaxError, NoGrammarCompiled, ParseFailure
from .fmt import format_grammar
from .peg.runtime import CompiledGrammar, GrammarRunner, call_deep
from .pipeline import compile_grammar
from .tree import ParseNode, render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseSuccess:
    nodes: Tuple[ParseNode, ...]
    output: str
    ok = True


@dataclass(frozen=True)
class ParseError:
    error: ParseErrorRecord
    output: str
    ok = False


ParseResult = Union[ParseSuccess, ParseError]


def run_rule(grammar: CompiledGrammar, rule_name: str, input_text: str,
             call_limit: Optional[int] = None) -> ParseResult:
    try:
        nodes = GrammarRunner(grammar, call_limit=call_limit).run(rule_name, input_text)
    except ParseFailure as e:
        record = encode_parse_error(e, input_text)
        logger.debug("rule %s failed: %s", rule_name, record.variant)
        return ParseError(record, format_error_json(record))
    logger.debug("rule %s matched, %d top-level node(s)", rule_name, len(nodes))
    return ParseSuccess(tuple(nodes), call_deep(render, nodes))


class Session:
    def __init__(self, call_limit: Optional[int] = None):
        self.call_limit = call_limit
        self._lock = threading.Lock()
        self._grammar: Optional[CompiledGrammar] = None

    @property
    def grammar(self) -> Optional[CompiledGrammar]:
        with self._lock:
            return self._grammar

    def compile(self, grammar_text: str) -> List[CompileDiagnostic]:
        """Compile and install. Empty list means success."""
        result = compile_grammar(grammar_text)
        if result.grammar is None:
            return result.diagnostics
        with self._lock:
            self._grammar = result.grammar
        logger.debug("installed grammar with %d rule(s)", len(result.grammar.rules))
        return []

    def parse(self, rule_name: str, input_text: str) -> ParseResult:
        grammar = self.grammar
        if grammar is None:
            raise NoGrammarCompiled()
        return run_rule(grammar, rule_name, input_text, self.call_limit)

    def run(self, rule_name: str, input_text: str) -> str:
        """Rendered tree on success, pretty JSON error record on failure."""
        return self.parse(rule_name, input_text).output

    def format(self, grammar_text: str) -> str:
        """Formatted grammar, or the input unchanged if it does not parse."""
        try:
            return format_grammar(grammar_text)
        except GrammarSyntaxError as e:
            logger.debug("format skipped: %s", e)
            return grammar_text
