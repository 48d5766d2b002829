"""Shared fixtures for the pegplay test suite."""

from __future__ import annotations

import pytest

from pegplay.pipeline import compile_grammar
from pegplay.peg.engine import Vm
from pegplay.session import Session


@pytest.fixture
def session() -> Session:
    return Session()


@pytest.fixture
def vm_for():
    """Compile grammar text and return a Vm over it; fails the test on diagnostics."""

    def build(grammar_text: str, call_limit=None) -> Vm:
        result = compile_grammar(grammar_text)
        assert result.diagnostics == [], [d.as_dict() for d in result.diagnostics]
        return Vm(result.grammar.rules, call_limit=call_limit)

    return build
