"""Compile diagnostics and run-time error records."""

from __future__ import annotations

import json

import pytest

from pegplay import diagnostics
from pegplay.diagnostics import (
    ParseErrorRecord, encode_compile_diagnostic, encode_parse_error, enumerate_rules,
    format_error_json, render_message, variant_message,
)
from pegplay.errors import CustomError, Issue, ParseFailure, ParsingError, Pos, Span


@pytest.mark.parametrize(
    "names, expected",
    [
        (["a"], "a"),
        (["a", "b"], "a or b"),
        (["a", "b", "c"], "a, b, or c"),
    ],
)
def test_enumerate_rules(names, expected) -> None:
    assert enumerate_rules(names) == expected


@pytest.mark.parametrize(
    "variant, expected",
    [
        (ParsingError(("b", "a", "a"), ()), "expected a or b"),
        (ParsingError((), ("kw",)), "unexpected kw"),
        (ParsingError(("x",), ("kw",)), "unexpected kw; expected x"),
        (ParsingError((), ()), "unknown parsing error"),
        (CustomError("rule nope is undefined"), "rule nope is undefined"),
    ],
)
def test_variant_message(variant, expected) -> None:
    assert variant_message(variant) == expected


def test_render_message_position() -> None:
    message = render_message(ParsingError(("number",), ()), "ab", 0)
    assert message == " --> 1:1\n  |\n1 | ab\n  | ^---\n  |\n  = expected number"


def test_render_message_second_line() -> None:
    message = render_message(ParsingError(("b",), ()), "first\nsecXnd", 9)
    assert message.splitlines() == [
        " --> 2:4",
        "  |",
        "2 | secXnd",
        "  |    ^---",
        "  |",
        "  = expected b",
    ]


def test_render_message_span() -> None:
    message = render_message(CustomError("bad"), "let abc = 1", 4, 7)
    assert "  | " + " " * 4 + "^-^" in message.splitlines()


def test_render_message_wide_line_numbers() -> None:
    text = "\n" * 11 + "x"
    lines = render_message(CustomError("oops"), text, 11).splitlines()
    assert lines[0] == "  --> 12:1"
    assert lines[2] == "12 | x"
    assert lines[-1] == "   = oops"


def test_compile_diagnostic_position() -> None:
    diag = encode_compile_diagnostic(Issue("expected `=`", 2), "a { }")
    assert diag.as_dict() == {"from": "(0, 2)", "to": "(0, 2)", "message": "expected `=`"}
    assert diag.location == Pos(2)


def test_compile_diagnostic_span_across_lines() -> None:
    src = "a = {\n  b }"
    diag = encode_compile_diagnostic(Issue("rule b is undefined", 4, 9), src)
    assert diag.from_ == "(0, 4)"
    assert diag.to == "(1, 3)"
    assert diag.from_ != diag.to


def test_compile_diagnostic_uses_byte_offsets() -> None:
    src = 'é = { x }'
    diag = encode_compile_diagnostic(Issue("rule x is undefined", 6, 7), src)
    assert diag.location == Span(7, 8)
    assert diag.as_dict()["from"] == "(0, 6)"


def test_parse_error_record_shape() -> None:
    record = encode_parse_error(ParseFailure(ParsingError(("number",), ()), 0), "ab")
    assert record.as_dict() == {
        "message": " --> 1:1\n  |\n1 | ab\n  | ^---\n  |\n  = expected number",
        "variant": {"ParsingError": {"positives": ["number"], "negatives": []}},
        "location": {"Pos": 0},
        "line_col": {"Pos": [0, 0]},
    }


def test_parse_error_record_is_byte_based() -> None:
    record = encode_parse_error(ParseFailure(ParsingError(("x",), ()), 2), "éé!")
    assert record.location == Pos(4)
    assert record.line_col == (0, 2)


def test_custom_error_record() -> None:
    record = encode_parse_error(ParseFailure(CustomError("call limit reached"), 1, 3), "abcd")
    data = record.as_dict()
    assert data["variant"] == {"CustomError": {"message": "call limit reached"}}
    assert data["location"] == {"Span": [1, 3]}
    assert data["line_col"] == {"Span": [[0, 1], [0, 3]]}


def test_format_error_json_is_pretty() -> None:
    record = encode_parse_error(ParseFailure(ParsingError(("alpha",), ()), 0), "bbb")
    text = format_error_json(record)
    assert text.startswith('{\n  "message": ')
    data = json.loads(text)
    assert list(data) == ["message", "variant", "location", "line_col"]
    assert data["variant"]["ParsingError"]["positives"] == ["alpha"]


def test_format_error_json_fallback(caplog) -> None:
    record = ParseErrorRecord("m", ParsingError((object(),), ()), Pos(0), (0, 0))
    with caplog.at_level("ERROR", logger=diagnostics.__name__):
        assert format_error_json(record) == "Failed to serialize error"
    assert "Failed to serialize error" in caplog.text


def test_position_and_span_on_second_line() -> None:
    src = "line one\nline two"
    at = encode_compile_diagnostic(Issue("here", 10), src)
    assert at.from_ == at.to == "(1, 1)"
    span = encode_compile_diagnostic(Issue("there", 5, 12), src)
    assert (span.from_, span.to) == ("(0, 5)", "(1, 3)")
