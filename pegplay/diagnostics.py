# pegplay/diagnostics.py
"""Diagnostic records and their wire shapes.

Compile time : Issue (char indices)  -> CompileDiagnostic {from, to, message}
Run time     : ParseFailure          -> ParseErrorRecord -> pretty JSON

    {
      "message": " --> 1:1\\n  |\\n1 | ab\\n  | ^---\\n  |\\n  = expected number",
      "variant": {"ParsingError": {"positives": ["number"], "negatives": []}},
      "location": {"Pos": 0},
      "line_col": {"Pos": [0, 0]}
    }

All offsets in records are UTF-8 byte offsets of the original text.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union
from .errors import (
    CustomError, ErrorVariant, InputLocation, Issue, ParseFailure, ParsingError, Pos, Span,
)
from .position import byte_offset, format_line_col, line_col

logger = logging.getLogger(__name__)

SERIALIZE_FALLBACK = "Failed to serialize error"

LineCol = Tuple[int, int]
LineColLocation = Union[LineCol, Tuple[LineCol, LineCol]]


# ---- message rendering ----

def enumerate_rules(names: Sequence[str]) -> str:
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} or {names[1]}"
    return ", ".join(names[:-1]) + f", or {names[-1]}"


def variant_message(variant: ErrorVariant) -> str:
    if isinstance(variant, CustomError):
        return variant.message
    positives = sorted(set(variant.positives))
    negatives = sorted(set(variant.negatives))
    if positives and negatives:
        return f"unexpected {enumerate_rules(negatives)}; expected {enumerate_rules(positives)}"
    if negatives:
        return f"unexpected {enumerate_rules(negatives)}"
    if positives:
        return f"expected {enumerate_rules(positives)}"
    return "unknown parsing error"


def _line_at(text: str, index: int) -> str:
    start = max(text.rfind("\n", 0, index), text.rfind("\r", 0, index)) + 1
    end = len(text)
    for sep in ("\n", "\r"):
        j = text.find(sep, start)
        if j != -1:
            end = min(end, j)
    return text[start:end]


def render_message(variant: ErrorVariant, text: str, start: int, end: Optional[int] = None) -> str:
    """pest-style framed message. `start`/`end` are char indices."""
    line, col = line_col(byte_offset(text, start), text)
    line, col = line + 1, col + 1
    number = str(line)
    pad = " " * len(number)

    if end is None:
        underline = "^---"
    else:
        end_line, end_col = line_col(byte_offset(text, end), text)
        width = end_col + 1 - col if end_line + 1 == line else 1
        if width > 1:
            underline = "^" + "-" * (width - 2) + "^"
        else:
            underline = "^"

    return "\n".join([
        f"{pad}--> {line}:{col}",
        f"{pad} |",
        f"{number} | {_line_at(text, start)}",
        f"{pad} | {' ' * (col - 1)}{underline}",
        f"{pad} |",
        f"{pad} = {variant_message(variant)}",
    ])


# ---- compile-time ----

@dataclass(frozen=True)
class CompileDiagnostic:
    from_: str
    to: str
    message: str
    location: InputLocation

    def as_dict(self) -> Dict[str, str]:
        return {"from": self.from_, "to": self.to, "message": self.message}


def issue_location(issue: Issue, source: str) -> InputLocation:
    """Char-index issue location -> byte-offset InputLocation."""
    start = byte_offset(source, issue.start)
    if issue.end is None:
        return Pos(start)
    return Span(start, byte_offset(source, issue.end))


def encode_compile_diagnostic(issue: Issue, source: str) -> CompileDiagnostic:
    location = issue_location(issue, source)
    if isinstance(location, Pos):
        text = format_line_col(location.offset, source)
        return CompileDiagnostic(text, text, issue.message, location)
    return CompileDiagnostic(
        format_line_col(location.start, source),
        format_line_col(location.end, source),
        issue.message,
        location,
    )


# ---- run-time ----

@dataclass(frozen=True)
class ParseErrorRecord:
    message: str
    variant: ErrorVariant
    location: InputLocation
    line_col: LineColLocation

    def as_dict(self) -> Dict[str, Any]:
        if isinstance(self.variant, ParsingError):
            variant: Dict[str, Any] = {"ParsingError": {
                "positives": list(self.variant.positives),
                "negatives": list(self.variant.negatives),
            }}
        else:
            variant = {"CustomError": {"message": self.variant.message}}

        if isinstance(self.location, Pos):
            location: Dict[str, Any] = {"Pos": self.location.offset}
            lc: Dict[str, Any] = {"Pos": list(self.line_col)}
        else:
            location = {"Span": [self.location.start, self.location.end]}
            lc = {"Span": [list(p) for p in self.line_col]}

        return {
            "message": self.message,
            "variant": variant,
            "location": location,
            "line_col": lc,
        }


def encode_parse_error(failure: ParseFailure, input_text: str) -> ParseErrorRecord:
    variant = failure.variant
    if isinstance(variant, ParsingError):
        variant = ParsingError(
            tuple(sorted(set(variant.positives))),
            tuple(sorted(set(variant.negatives))),
        )
    message = render_message(variant, input_text, failure.pos, failure.end)
    start = byte_offset(input_text, failure.pos)
    if failure.end is None:
        return ParseErrorRecord(message, variant, Pos(start), line_col(start, input_text))
    end = byte_offset(input_text, failure.end)
    return ParseErrorRecord(
        message,
        variant,
        Span(start, end),
        (line_col(start, input_text), line_col(end, input_text)),
    )


def format_error_json(record: ParseErrorRecord) -> str:
    """Pretty JSON of a run-time error; never raises."""
    try:
        return json.dumps(record.as_dict(), indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize error: %s", e)
        return SERIALIZE_FALLBACK
