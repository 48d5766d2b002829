# pegplay/grammar/builder.py
"""Rule tree -> executable AST.

Conversion resolves repetition bounds and PEEK slice bounds to integers;
afterwards the rule tree is checked for problems that would make the
grammar loop or recurse forever:

- left recursion (a -> b -> a)
- repetition of an expression that cannot fail / never progresses
- choice alternatives that can never be reached
- WHITESPACE / COMMENT that cannot fail / never progress
"""

from __future__     import annotations
from typing         import Dict, List, Optional
from .ast           import *
from ..errors       import GrammarConstructionError, Issue
from ..peg          import ast as peg


U32_MAX = 2 ** 32 - 1
I32_MIN = -(2 ** 31)
I32_MAX = 2 ** 31 - 1


class _Builder:
    def __init__(self, tree: RuleTree):
        self.tree = tree
        self.rules: Dict[str, ParserRule] = tree.by_name()
        self.issues: List[Issue] = []

    def _issue(self, message: str, span: Optional[Span]) -> None:
        start, end = (span.start, span.end) if span is not None else (0, None)
        self.issues.append(Issue(message, start, end))

    # ---- conversion ----

    def _u32(self, text: Optional[str], span: Optional[Span]) -> Optional[int]:
        if text is None:
            return None
        value = int(text)
        if value > U32_MAX:
            self._issue("number cannot overflow u32", span)
            return 0
        return value

    def _i32(self, text: Optional[str], span: Optional[Span]) -> Optional[int]:
        if text is None:
            return None
        value = int(text)
        if not I32_MIN <= value <= I32_MAX:
            self._issue("number cannot overflow i32", span)
            return 0
        return value

    def _convert(self, e: Expr) -> peg.Node:
        if isinstance(e, Str):
            return peg.Literal(e.text)
        if isinstance(e, Insens):
            return peg.Insensitive(e.text)
        if isinstance(e, Range):
            return peg.Range(e.lo, e.hi)
        if isinstance(e, Ident):
            return peg.Ref(e.name)
        if isinstance(e, PeekSlice):
            start = self._i32(e.start, e.span)
            end = self._i32(e.end, e.span)
            return peg.PeekSlice(start or 0, end)
        if isinstance(e, PosPred):
            return peg.And(self._convert(e.node))
        if isinstance(e, NegPred):
            return peg.Not(self._convert(e.node))
        if isinstance(e, Seq):
            return peg.Seq(tuple(self._convert(i) for i in e.items))
        if isinstance(e, Choice):
            return peg.Choice(tuple(self._convert(a) for a in e.alts))
        if isinstance(e, Repeat):
            return peg.Repeat(self._convert(e.node), e.kind)
        if isinstance(e, Bounded):
            before = len(self.issues)
            lo = self._u32(e.lo, e.span) or 0
            hi = lo if e.hi == e.lo else self._u32(e.hi, e.span)
            if len(self.issues) == before and hi == 0:
                self._issue("cannot repeat 0 times", e.span)
            elif len(self.issues) == before and hi is not None and lo > hi:
                self._issue("the minimum number of repetitions cannot exceed the maximum", e.span)
            return peg.Bounded(self._convert(e.node), lo, hi)
        if isinstance(e, Push):
            return peg.Push(self._convert(e.node))
        if isinstance(e, NodeTag):
            return peg.Tagged(self._convert(e.node), e.tag)
        raise TypeError(f"unknown rule tree node: {e!r}")

    # ---- analyses ----

    def is_non_failing(self, e: Expr, trace: List[str]) -> bool:
        """True if `e` succeeds on every input."""
        if isinstance(e, (Str, Insens)):
            return e.text == ""
        if isinstance(e, Ident):
            rule = self.rules.get(e.name)
            if rule is None or e.name in trace:
                return False
            trace.append(e.name)
            result = self.is_non_failing(rule.expr, trace)
            trace.pop()
            return result
        if isinstance(e, PosPred):
            return self.is_non_failing(e.node, trace)
        if isinstance(e, NegPred):
            return False
        if isinstance(e, Seq):
            return all(self.is_non_failing(i, trace) for i in e.items)
        if isinstance(e, Choice):
            return any(self.is_non_failing(a, trace) for a in e.alts)
        if isinstance(e, Repeat):
            if e.kind in (Suffix.OPT, Suffix.STAR):
                return True
            return self.is_non_failing(e.node, trace)
        if isinstance(e, Bounded):
            if e.lo is None or int(e.lo) == 0:
                return True
            return self.is_non_failing(e.node, trace)
        if isinstance(e, (Push, NodeTag)):
            return self.is_non_failing(e.node, trace)
        return False

    def is_non_progressing(self, e: Expr, trace: List[str]) -> bool:
        """True if `e` may succeed without consuming input."""
        if isinstance(e, (Str, Insens)):
            return e.text == ""
        if isinstance(e, Ident):
            if e.name in ("SOI", "EOI"):
                return True
            rule = self.rules.get(e.name)
            if rule is None or e.name in trace:
                return False
            trace.append(e.name)
            result = self.is_non_progressing(rule.expr, trace)
            trace.pop()
            return result
        if isinstance(e, (PosPred, NegPred)):
            return True
        if isinstance(e, Seq):
            return all(self.is_non_progressing(i, trace) for i in e.items)
        if isinstance(e, Choice):
            return any(self.is_non_progressing(a, trace) for a in e.alts)
        if isinstance(e, Repeat):
            if e.kind in (Suffix.OPT, Suffix.STAR):
                return True
            return self.is_non_progressing(e.node, trace)
        if isinstance(e, Bounded):
            if e.lo is None or int(e.lo) == 0:
                return True
            return self.is_non_progressing(e.node, trace)
        if isinstance(e, (Push, NodeTag)):
            return self.is_non_progressing(e.node, trace)
        return False

    def _nullable(self, e: Expr) -> bool:
        return self.is_non_failing(e, []) or self.is_non_progressing(e, [])

    # ---- checks ----

    def _check_left(self, e: Expr, trace: List[str]) -> Optional[Issue]:
        if isinstance(e, Ident):
            if e.name == trace[0]:
                chain = " -> ".join(trace + [e.name])
                return Issue(f"rule {trace[0]} is left-recursive ({chain})", e.span.start, e.span.end)
            rule = self.rules.get(e.name)
            if rule is None or e.name in trace:
                return None
            trace.append(e.name)
            found = self._check_left(rule.expr, trace)
            trace.pop()
            return found
        if isinstance(e, Seq):
            for item in e.items:
                found = self._check_left(item, trace)
                if found is not None:
                    return found
                if not self._nullable(item):
                    break
            return None
        if isinstance(e, Choice):
            for alt in e.alts:
                found = self._check_left(alt, trace)
                if found is not None:
                    return found
            return None
        if isinstance(e, (PosPred, NegPred, Repeat, Bounded, Push, NodeTag)):
            return self._check_left(e.node, trace)
        return None

    def _validate_left_recursion(self) -> None:
        for rule in self.rules.values():
            found = self._check_left(rule.expr, [rule.name])
            if found is not None:
                self.issues.append(found)

    def _validate_repetition(self) -> None:
        for rule in self.rules.values():
            for e in walk(rule.expr):
                unbounded = (
                    (isinstance(e, Repeat) and e.kind in (Suffix.STAR, Suffix.PLUS))
                    or (isinstance(e, Bounded) and e.hi is None)
                )
                if not unbounded:
                    continue
                if self.is_non_failing(e.node, []):
                    self._issue("expression inside repetition cannot fail and will repeat infinitely", e.node.span)
                elif self.is_non_progressing(e.node, []):
                    self._issue("expression inside repetition is non-progressing and will repeat infinitely", e.node.span)

    def _validate_choices(self) -> None:
        for rule in self.rules.values():
            for e in walk(rule.expr):
                if not isinstance(e, Choice):
                    continue
                for alt in e.alts[:-1]:
                    if self.is_non_failing(alt, []):
                        self._issue("expression cannot fail; following choices cannot be reached", alt.span)
                        break

    def _validate_whitespace_comment(self) -> None:
        for name in ("WHITESPACE", "COMMENT"):
            rule = self.rules.get(name)
            if rule is None:
                continue
            if self.is_non_failing(rule.expr, []):
                self._issue(f"{name} cannot fail and will repeat infinitely", rule.span)
            elif self.is_non_progressing(rule.expr, []):
                self._issue(f"{name} is non-progressing and will repeat infinitely", rule.span)

    # ---- entry ----

    def build(self) -> List[peg.Rule]:
        out = [peg.Rule(r.name, r.ty, self._convert(r.expr)) for r in self.rules.values()]
        if self.issues:
            return out

        self._validate_left_recursion()
        self._validate_repetition()
        self._validate_choices()
        self._validate_whitespace_comment()
        self.issues.sort(key=lambda i: i.start)
        return out


def build_ast(tree: RuleTree) -> List[peg.Rule]:
    """RuleTree -> executable rules (definition order). Raises
    GrammarConstructionError listing every problem found."""
    b = _Builder(tree)
    rules = b.build()
    if b.issues:
        raise GrammarConstructionError(b.issues)
    return rules
