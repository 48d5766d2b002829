# pegplay/errors.py
"""Error taxonomy shared by the front-end, the VM and the session.

- Issue                     : one front-end problem, char-index location
- GrammarSyntaxError        : malformed meta-syntax (exactly one Issue)
- GrammarValidationError    : rule-level problems (one or more Issues)
- GrammarConstructionError  : AST-build problems (one or more Issues)
- ParseFailure              : a rule did not match the input
- NoGrammarCompiled         : run before any successful compile
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union


# ---- locations ----

@dataclass(frozen=True)
class Pos:
    offset: int


@dataclass(frozen=True)
class Span:
    start: int
    end: int


InputLocation = Union[Pos, Span]


# ---- run-time error variants ----

@dataclass(frozen=True)
class ParsingError:
    """Expectation mismatch: rules attempted (positives) or matched
    inside a negative lookahead (negatives) at the failure position."""
    positives: Tuple[str, ...] = ()
    negatives: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomError:
    message: str


ErrorVariant = Union[ParsingError, CustomError]


@dataclass(frozen=True)
class Issue:
    """Front-end problem. `start`/`end` are char indices into the grammar
    text; `end is None` means a single position."""
    message: str
    start: int
    end: Optional[int] = None


# ---- exceptions ----

class PegplayError(Exception):
    """Base class of everything raised by pegplay."""


class GrammarSyntaxError(PegplayError, SyntaxError):
    def __init__(self, issue: Issue):
        super().__init__(issue.message)
        self.issue = issue

    @property
    def issues(self) -> List[Issue]:
        return [self.issue]


class GrammarValidationError(PegplayError):
    def __init__(self, issues: Sequence[Issue]):
        super().__init__("; ".join(i.message for i in issues))
        self.issues = list(issues)


class GrammarConstructionError(PegplayError):
    def __init__(self, issues: Sequence[Issue]):
        super().__init__("; ".join(i.message for i in issues))
        self.issues = list(issues)


class ParseFailure(PegplayError):
    """Raised by the VM. `pos` is a char index into the input."""

    def __init__(self, variant: ErrorVariant, pos: int, end: Optional[int] = None):
        super().__init__(variant)
        self.variant = variant
        self.pos = pos
        self.end = end


class NoGrammarCompiled(PegplayError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("no grammar has been compiled; call compile() before run()")
