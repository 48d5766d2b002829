# pegplay/peg/runtime.py
from __future__ import annotations
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar
from .ast import Rule
from .engine import Vm
from ..tree import ParseNode

T = TypeVar("T")

# A rule call costs several Python frames; right-recursive grammars nest
# one call per list item.
RECURSION_LIMIT = 100_000
STACK_SIZE = 256 * 1024 * 1024

_DEPTH_LOCK = threading.Lock()


def call_deep(fn: Callable[..., T], *args: Any) -> T:
    """Run `fn(*args)` on a worker thread with a large stack and a raised
    recursion limit; both are restored afterwards. Exceptions propagate."""
    outcome: Dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["value"] = fn(*args)
        except Exception as e:
            outcome["error"] = e

    with _DEPTH_LOCK:
        old_limit = sys.getrecursionlimit()
        old_stack = threading.stack_size(STACK_SIZE)
        sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
        try:
            worker = threading.Thread(target=target, name="pegplay-vm")
            worker.start()
            worker.join()
        finally:
            sys.setrecursionlimit(old_limit)
            threading.stack_size(old_stack)

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


@dataclass(frozen=True)
class CompiledGrammar:
    """Compiled (optimized) grammar. Immutable once built, so a session can
    swap it in as a whole."""
    rules: Dict[str, Rule]

    def rule_names(self) -> List[str]:
        return list(self.rules)

    def __contains__(self, name: str) -> bool:
        return name in self.rules

class GrammarRunner:
    """Execute a compiled grammar on input text, one fresh VM per run."""
    def __init__(self, grammar: CompiledGrammar, call_limit: Optional[int] = None):
        self.grammar = grammar
        self.call_limit = call_limit

    def run(self, rule_name: str, text: str) -> List[ParseNode]:
        vm = Vm(self.grammar.rules, call_limit=self.call_limit)
        return call_deep(vm.parse, rule_name, text)
