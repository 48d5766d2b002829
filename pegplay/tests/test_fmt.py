"""Grammar formatter layout."""

from __future__ import annotations

import pytest

from pegplay.errors import GrammarSyntaxError
from pegplay.fmt import format_grammar
from pegplay.grammar.parser import parse_grammar


@pytest.mark.parametrize(
    "src, expected",
    [
        ('a={"a"}', 'a = { "a" }\n'),
        ("number=@{ASCII_DIGIT +}", "number = @{ ASCII_DIGIT+ }\n"),
        ("w = _{ \" \"|\"\\t\" }", 'w = _{ " " | "\\t" }\n'),
        ("r = ${ 'a' .. 'z' ~ ( x )* }", "r = ${ 'a'..'z' ~ (x)* }\n"),
        ("p = !{ & a ~ ! b ~ #t = c {2, 3} }", "p = !{ &a ~ !b ~ #t = c{2,3} }\n"),
        ('s = { PUSH ( "a" ) ~ PEEK [ 0 .. -1 ] ~ ^ "k" }', 's = { PUSH("a") ~ PEEK[0..-1] ~ ^"k" }\n'),
        ('x = { | "a" | "b" }', 'x = { "a" | "b" }\n'),
    ],
)
def test_single_line_rules(src: str, expected: str) -> None:
    assert format_grammar(src) == expected


def test_multiline_body_one_alternative_per_line() -> None:
    src = 'expr = { a\n  |b ~c | (d|e) }'
    assert format_grammar(src) == "expr = {\n    a\n  | b ~ c\n  | (d | e)\n}\n"


def test_blank_lines_between_rules_collapse_to_one() -> None:
    src = 'a = { "a" }\n\n\n\nb = { "b" }\nc = { "c" }'
    assert format_grammar(src) == 'a = { "a" }\n\nb = { "b" }\nc = { "c" }\n'


def test_comments_are_kept() -> None:
    src = '//! grammar doc\n\n/// rule doc\na = { "a" } // trailing\n'
    assert format_grammar(src) == '//! grammar doc\n\n/// rule doc\na = { "a" } // trailing\n'


def test_comment_in_body_forces_multiline_layout() -> None:
    src = 'a = { "a" // first\n | "b" }'
    assert format_grammar(src) == 'a = {\n    "a" // first\n  | "b"\n}\n'


def test_comment_on_its_own_line_in_body() -> None:
    src = 'a = {\n  "a"\n  // between\n  | "b"\n}'
    assert format_grammar(src) == 'a = {\n    "a"\n    // between\n  | "b"\n}\n'


def test_formatting_is_idempotent_and_preserves_meaning() -> None:
    src = 'WHITESPACE=_{" "}\nsum = { num ~ ("+"~num)* }\n\n\nnum=@{ASCII_DIGIT+}'
    once = format_grammar(src)
    assert format_grammar(once) == once
    assert parse_grammar(once).names() == parse_grammar(src).names()


def test_empty_grammar() -> None:
    assert format_grammar("") == ""


def test_invalid_grammar_raises() -> None:
    with pytest.raises(GrammarSyntaxError):
        format_grammar("a = {")
