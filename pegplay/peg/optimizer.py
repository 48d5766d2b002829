# pegplay/peg/optimizer.py
"""Rewrites validated rules into the form the VM executes.

Passes, in order:
  1. unroll     : e{n,m} -> e ~ ... ~ e? ~ ...     (Bounded disappears)
  2. lower      : builtin references -> Any / Range / Choice / Property
  3. flatten    : nested Seq / Choice collapsed
  4. concatenate: adjacent literals merged (atomic rules only)
  5. skip       : (!("a" | "b") ~ ANY)* -> Skip(("a", "b")) (atomic rules only)
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, List, Set
from .ast import (
    Literal, Any, Property, Ref, And, Not, Repeat, Bounded, Seq, Choice,
    Push, Tagged, Skip, Node, Rule, RuleType,
)
from .builtins import PRIMITIVES, PROPERTIES
from .runtime import CompiledGrammar


def _map_children(node: Node, f: Callable[[Node], Node]) -> Node:
    if isinstance(node, Seq):
        return Seq(tuple(f(i) for i in node.items))
    if isinstance(node, Choice):
        return Choice(tuple(f(a) for a in node.alts))
    if isinstance(node, And):
        return And(f(node.node))
    if isinstance(node, Not):
        return Not(f(node.node))
    if isinstance(node, Repeat):
        return Repeat(f(node.node), node.kind)
    if isinstance(node, Bounded):
        return Bounded(f(node.node), node.lo, node.hi)
    if isinstance(node, Push):
        return Push(f(node.node))
    if isinstance(node, Tagged):
        return Tagged(f(node.node), node.tag)
    return node


def _bottom_up(node: Node, f: Callable[[Node], Node]) -> Node:
    return f(_map_children(node, lambda c: _bottom_up(c, f)))


def _seq(items: List[Node]) -> Node:
    return items[0] if len(items) == 1 else Seq(tuple(items))


# ---- 1. unroll ----
def _unroll(node: Node) -> Node:
    if not isinstance(node, Bounded):
        return node
    inner, lo, hi = node.node, node.lo, node.hi
    items: List[Node] = [inner] * lo
    if hi is None:
        items.append(Repeat(inner, "*"))
    else:
        items.extend([Repeat(inner, "?")] * (hi - lo))
    if not items:
        # e{0,0}; the builder rejects it
        return Literal("")
    return _seq(items)


# ---- 2. lower builtins ----
def _lowerer(defined: Set[str]) -> Callable[[Node], Node]:
    def lower(node: Node) -> Node:
        if isinstance(node, Ref) and node.name not in defined:
            if node.name in PRIMITIVES:
                return PRIMITIVES[node.name]
            if node.name in PROPERTIES:
                return Property(node.name)
        return node
    return lower


# ---- 3. flatten ----
def _flatten(node: Node) -> Node:
    if isinstance(node, Seq):
        items: List[Node] = []
        for i in node.items:
            items.extend(i.items if isinstance(i, Seq) else (i,))
        return _seq(items)
    if isinstance(node, Choice):
        alts: List[Node] = []
        for a in node.alts:
            alts.extend(a.alts if isinstance(a, Choice) else (a,))
        return Choice(tuple(alts))
    return node


# ---- 4. concatenate ----
def _concatenate(node: Node) -> Node:
    if not isinstance(node, Seq):
        return node
    items: List[Node] = []
    for i in node.items:
        if isinstance(i, Literal) and items and isinstance(items[-1], Literal):
            items[-1] = Literal(items[-1].text + i.text)
        else:
            items.append(i)
    return _seq(items)


# ---- 5. skip ----
def _skip_strings(node: Node):
    if isinstance(node, Literal):
        return (node.text,)
    if isinstance(node, Choice) and all(isinstance(a, Literal) for a in node.alts):
        return tuple(a.text for a in node.alts)
    return None


def _skipper(node: Node) -> Node:
    if not (isinstance(node, Repeat) and node.kind == "*"):
        return node
    body = node.node
    if not (isinstance(body, Seq) and len(body.items) == 2):
        return node
    guard, step = body.items
    if not (isinstance(guard, Not) and isinstance(step, Any)):
        return node
    strings = _skip_strings(guard.node)
    if not strings or "" in strings:
        return node
    return Skip(strings)


def optimize_rule(rule: Rule, defined: Set[str]) -> Rule:
    expr = _bottom_up(rule.expr, _unroll)
    expr = _bottom_up(expr, _lowerer(defined))
    expr = _bottom_up(expr, _flatten)
    if rule.ty == RuleType.ATOMIC:
        expr = _bottom_up(expr, _concatenate)
        expr = _bottom_up(expr, _skipper)
    return Rule(rule.name, rule.ty, expr)


def optimize(rules: Iterable[Rule]) -> CompiledGrammar:
    rules = list(rules)
    defined = {r.name for r in rules}
    optimized: Dict[str, Rule] = {}
    for r in rules:
        optimized[r.name] = optimize_rule(r, defined)
    return CompiledGrammar(optimized)
