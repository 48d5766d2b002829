# pegplay/peg/engine.py
from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple
import regex
from .ast import (
    Literal, Insensitive, Range, Any, Property, Ref, PeekSlice, And, Not,
    Repeat, Seq, Choice, Push, Tagged, Skip, Node, Rule, RuleType,
)
from .builtins import PRIMITIVES, PROPERTIES, is_builtin
from ..errors import CustomError, ParseFailure, ParsingError
from ..position import byte_offsets
from ..tree import ParseNode

# Backtracking VM:
# - Walks optimized rules directly, without memoization.
# - Implicit WHITESPACE/COMMENT skipping between sequence items and
#   repetitions while the atomicity is NON_ATOMIC.
# - Failure tracking: the furthest position any rule failed at, with the
#   rules attempted there (positives) and the rules that matched inside a
#   negative lookahead there (negatives).
# Every _eval that returns False leaves pos, queue and stack unchanged.

class Atomicity:
    ATOMIC          = "atomic"
    COMPOUND_ATOMIC = "compound_atomic"
    NON_ATOMIC      = "non_atomic"

class Lookahead:
    NONE     = "none"
    POSITIVE = "positive"
    NEGATIVE = "negative"

_Checkpoint = Tuple[int, int, Tuple[str, ...]]

_PROPERTY_RE: Dict[str, "regex.Pattern"] = {}

def _property_re(name: str) -> "regex.Pattern":
    pat = _PROPERTY_RE.get(name)
    if pat is None:
        pat = regex.compile(r"\p{%s}" % PROPERTIES[name])
        _PROPERTY_RE[name] = pat
    return pat


class _CallLimitReached(Exception):
    pass


class Vm:
    def __init__(self, rules: Dict[str, Rule], call_limit: Optional[int] = None):
        self.rules = rules
        self.call_limit = call_limit
        self.has_whitespace = "WHITESPACE" in rules
        self.has_comment = "COMMENT" in rules
        self._reset("")

    def _reset(self, text: str) -> None:
        self.text = text
        self.bytes = byte_offsets(text)
        self.pos = 0
        self.queue: List[ParseNode] = []
        self.stack: Tuple[str, ...] = ()
        self.atomicity = Atomicity.NON_ATOMIC
        self.lookahead = Lookahead.NONE
        self.attempt_pos = 0
        self.pos_attempts: List[str] = []
        self.neg_attempts: List[str] = []
        self.calls = 0

    # ---- Public entrypoint for one rule ----
    def parse(self, rule_name: str, text: str) -> List[ParseNode]:
        """Run `rule_name` from the start of `text`. Returns the top-level
        nodes; raises ParseFailure. The input need not be fully consumed."""
        self._reset(text)
        if rule_name not in self.rules and not is_builtin(rule_name):
            raise ParseFailure(CustomError(f"rule {rule_name} is undefined"), 0)
        try:
            ok = self._call(rule_name)
        except _CallLimitReached:
            raise ParseFailure(CustomError("call limit reached"), self.attempt_pos) from None
        except RecursionError:
            raise ParseFailure(CustomError("recursion limit reached"), self.attempt_pos) from None
        if ok:
            return list(self.queue)
        variant = ParsingError(
            positives=tuple(sorted(set(self.pos_attempts))),
            negatives=tuple(sorted(set(self.neg_attempts))),
        )
        raise ParseFailure(variant, self.attempt_pos)

    # ---- state helpers ----
    def _checkpoint(self) -> _Checkpoint:
        return self.pos, len(self.queue), self.stack

    def _restore(self, cp: _Checkpoint) -> None:
        self.pos, n, self.stack = cp
        del self.queue[n:]

    def _attempts_at(self, pos: int) -> int:
        if pos == self.attempt_pos:
            return len(self.pos_attempts) + len(self.neg_attempts)
        return 0

    def _track(self, name: str, pos: int, pos_idx: int, neg_idx: int, prev_attempts: int) -> None:
        if self.atomicity == Atomicity.ATOMIC:
            return
        # a single attempt made by children is more precise than this rule
        curr = self._attempts_at(pos)
        if curr > prev_attempts and curr - prev_attempts == 1:
            return
        if pos == self.attempt_pos:
            del self.pos_attempts[pos_idx:]
            del self.neg_attempts[neg_idx:]
        if pos > self.attempt_pos:
            self.pos_attempts.clear()
            self.neg_attempts.clear()
            self.attempt_pos = pos
        if pos == self.attempt_pos:
            if self.lookahead == Lookahead.NEGATIVE:
                self.neg_attempts.append(name)
            else:
                self.pos_attempts.append(name)

    # ---- rules ----
    def _call(self, name: str) -> bool:
        rule = self.rules.get(name)
        if rule is None:
            return self._builtin(name)

        self.calls += 1
        if self.call_limit is not None and self.calls > self.call_limit:
            raise _CallLimitReached()

        def body() -> bool:
            return self._eval(rule.expr)

        ty = rule.ty
        if name in ("WHITESPACE", "COMMENT"):
            if ty == RuleType.SILENT:
                return self._atomic(Atomicity.ATOMIC, body)
            if ty == RuleType.NON_ATOMIC:
                return self._atomic(Atomicity.ATOMIC, lambda: self._rule(name, body))
            if ty == RuleType.COMPOUND_ATOMIC:
                return self._atomic(Atomicity.COMPOUND_ATOMIC, lambda: self._rule(name, body))
            return self._rule(name, lambda: self._atomic(Atomicity.ATOMIC, body))

        if ty == RuleType.NORMAL:
            return self._rule(name, body)
        if ty == RuleType.SILENT:
            return body()
        if ty == RuleType.NON_ATOMIC:
            return self._atomic(Atomicity.NON_ATOMIC, lambda: self._rule(name, body))
        if ty == RuleType.COMPOUND_ATOMIC:
            return self._atomic(Atomicity.COMPOUND_ATOMIC, lambda: self._rule(name, body))
        return self._rule(name, lambda: self._atomic(Atomicity.ATOMIC, body))

    def _rule(self, name: str, body: Callable[[], bool]) -> bool:
        pos = self.pos
        index = len(self.queue)
        if pos == self.attempt_pos:
            pos_idx, neg_idx = len(self.pos_attempts), len(self.neg_attempts)
        else:
            pos_idx, neg_idx = 0, 0
        prev_attempts = self._attempts_at(pos)
        # nodes are only kept outside lookahead and atomic context
        emits = self.lookahead == Lookahead.NONE and self.atomicity != Atomicity.ATOMIC

        ok = body()
        if ok:
            if self.lookahead == Lookahead.NEGATIVE:
                self._track(name, pos, pos_idx, neg_idx, prev_attempts)
            if emits:
                children = tuple(self.queue[index:])
                del self.queue[index:]
                self.queue.append(ParseNode(
                    name, self.bytes[pos], self.bytes[self.pos], self.text[pos:self.pos], children))
            return True

        if self.lookahead != Lookahead.NEGATIVE:
            self._track(name, pos, pos_idx, neg_idx, prev_attempts)
        if emits:
            del self.queue[index:]
        return False

    def _atomic(self, atomicity: str, body: Callable[[], bool]) -> bool:
        prev = self.atomicity
        self.atomicity = atomicity
        try:
            return body()
        finally:
            self.atomicity = prev

    def _builtin(self, name: str) -> bool:
        if name == "SOI":
            return self.pos == 0
        if name == "EOI":
            return self._rule("EOI", lambda: self.pos == len(self.text))
        if name == "PEEK":
            return bool(self.stack) and self._match_string(self.stack[-1])
        if name == "POP":
            if self.stack and self._match_string(self.stack[-1]):
                self.stack = self.stack[:-1]
                return True
            return False
        if name == "PEEK_ALL":
            return self._match_string("".join(reversed(self.stack)))
        if name == "POP_ALL":
            if self._match_string("".join(reversed(self.stack))):
                self.stack = ()
                return True
            return False
        if name == "DROP":
            if self.stack:
                self.stack = self.stack[:-1]
                return True
            return False
        if name in PRIMITIVES:
            return self._eval(PRIMITIVES[name])
        if name in PROPERTIES:
            return self._eval(Property(name))
        raise AssertionError(f"undefined rule {name!r}")

    # ---- implicit whitespace ----
    def _skip(self) -> None:
        if self.atomicity != Atomicity.NON_ATOMIC:
            return
        if self.has_whitespace:
            self._repeat(lambda: self._call("WHITESPACE"))
        if self.has_comment:
            if self.has_whitespace:
                self._repeat(lambda: self._call("COMMENT") and self._repeat(lambda: self._call("WHITESPACE")))
            else:
                self._repeat(lambda: self._call("COMMENT"))

    def _repeat(self, f: Callable[[], bool]) -> bool:
        while True:
            cp = self._checkpoint()
            if not f():
                self._restore(cp)
                return True
            if self.pos == cp[0]:
                return True

    def _skip_then(self, node: Node) -> bool:
        cp = self._checkpoint()
        self._skip()
        if self._eval(node):
            return True
        self._restore(cp)
        return False

    # ---- primitives ----
    def _match_string(self, s: str) -> bool:
        if self.text.startswith(s, self.pos):
            self.pos += len(s)
            return True
        return False

    def _match_char(self, pred: Callable[[str], bool]) -> bool:
        if self.pos < len(self.text) and pred(self.text[self.pos]):
            self.pos += 1
            return True
        return False

    def _peek_slice(self, start: int, end: Optional[int]) -> bool:
        n = len(self.stack)
        lo = start if start >= 0 else n + start
        hi = n if end is None else (end if end >= 0 else n + end)
        if not 0 <= lo <= hi <= n:
            return False
        return self._match_string("".join(self.stack[lo:hi]))

    def _lookahead(self, positive: bool, node: Node) -> bool:
        initial = self.lookahead
        if positive:
            self.lookahead = Lookahead.NEGATIVE if initial == Lookahead.NEGATIVE else Lookahead.POSITIVE
        else:
            self.lookahead = Lookahead.POSITIVE if initial == Lookahead.NEGATIVE else Lookahead.NEGATIVE
        cp = self._checkpoint()
        try:
            ok = self._eval(node)
        finally:
            self.lookahead = initial
        self._restore(cp)
        return ok if positive else not ok

    # ---- Evaluator for expressions ----
    def _eval(self, node: Node) -> bool:
        if isinstance(node, Literal):
            return self._match_string(node.text)

        if isinstance(node, Ref):
            return self._call(node.name)

        if isinstance(node, Seq):
            cp = self._checkpoint()
            for i, item in enumerate(node.items):
                if i:
                    self._skip()
                if not self._eval(item):
                    self._restore(cp)
                    return False
            return True

        if isinstance(node, Choice):
            for alt in node.alts:
                if self._eval(alt):
                    return True
            return False

        if isinstance(node, Range):
            return self._match_char(lambda c: node.lo <= c <= node.hi)

        if isinstance(node, Any):
            return self._match_char(lambda c: True)

        if isinstance(node, Insensitive):
            end = self.pos + len(node.text)
            if self.text[self.pos:end].lower() == node.text.lower():
                self.pos = end
                return True
            return False

        if isinstance(node, Property):
            pat = _property_re(node.name)
            return self._match_char(lambda c: pat.match(c) is not None)

        if isinstance(node, Repeat):
            if node.kind == "?":
                self._eval(node.node)
                return True
            if node.kind == "*":
                if self._eval(node.node):
                    self._repeat(lambda: self._skip_then(node.node))
                return True
            if node.kind == "+":
                if not self._eval(node.node):
                    return False
                self._repeat(lambda: self._skip_then(node.node))
                return True
            raise AssertionError(f"unknown repeat kind {node.kind!r}")

        if isinstance(node, And):
            return self._lookahead(True, node.node)

        if isinstance(node, Not):
            return self._lookahead(False, node.node)

        if isinstance(node, Push):
            start = self.pos
            if not self._eval(node.node):
                return False
            self.stack = self.stack + (self.text[start:self.pos],)
            return True

        if isinstance(node, PeekSlice):
            return self._peek_slice(node.start, node.end)

        if isinstance(node, Tagged):
            n = len(self.queue)
            if not self._eval(node.node):
                return False
            if len(self.queue) > n:
                self.queue[-1] = self.queue[-1].with_tag(node.tag)
            return True

        if isinstance(node, Skip):
            hits = [i for i in (self.text.find(s, self.pos) for s in node.strings) if i != -1]
            self.pos = min(hits) if hits else len(self.text)
            return True

        raise AssertionError(f"unknown node: {node!r}")
