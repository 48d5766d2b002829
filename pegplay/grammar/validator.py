# pegplay/grammar/validator.py
"""Name-level checks on a parsed rule tree (before any AST is built).

- pest keywords cannot be used as rule names
- a rule name may be defined once
- every referenced rule must be defined or builtin
"""

from __future__ import annotations
from typing import List, Set
from .ast import Ident, RuleTree, walk
from ..errors import Issue
from ..peg.builtins import KEYWORDS, is_builtin


def _validate_keywords(tree: RuleTree) -> List[Issue]:
    out: List[Issue] = []
    for rule in tree.rules:
        if rule.name in KEYWORDS:
            out.append(Issue(f"{rule.name} is a pest keyword", rule.span.start, rule.span.end))
    return out


def _validate_already_defined(tree: RuleTree) -> List[Issue]:
    out: List[Issue] = []
    seen: Set[str] = set()
    for rule in tree.rules:
        if rule.name in seen:
            out.append(Issue(f"rule {rule.name} already defined", rule.span.start, rule.span.end))
        else:
            seen.add(rule.name)
    return out


def _validate_undefined(tree: RuleTree) -> List[Issue]:
    out: List[Issue] = []
    defined = set(tree.names())
    for rule in tree.rules:
        for node in walk(rule.expr):
            if not isinstance(node, Ident):
                continue
            if node.name in defined or is_builtin(node.name):
                continue
            out.append(Issue(f"rule {node.name} is undefined", node.span.start, node.span.end))
    return out


def validate_rules(tree: RuleTree) -> List[Issue]:
    """Return every name-level problem, ordered by source position."""
    issues: List[Issue] = []
    issues.extend(_validate_keywords(tree))
    issues.extend(_validate_already_defined(tree))
    issues.extend(_validate_undefined(tree))
    issues.sort(key=lambda i: i.start)
    return issues
