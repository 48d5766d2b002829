"""VM semantics: rule types, implicit whitespace, stack, tags, error tracking."""

from __future__ import annotations

import sys
import threading

import pytest

from pegplay.errors import CustomError, ParseFailure, ParsingError
from pegplay.peg.runtime import GrammarRunner, call_deep
from pegplay.pipeline import compile_grammar
from pegplay.tree import render

ARITH = """
WHITESPACE = _{ " " }
num = @{ ASCII_DIGIT+ }
sum = { SOI ~ num ~ ("+" ~ num)* ~ EOI }
"""


def parse(vm, rule, text):
    return render(vm.parse(rule, text))


def failure(vm, rule, text) -> ParseFailure:
    with pytest.raises(ParseFailure) as exc:
        vm.parse(rule, text)
    return exc.value


def test_implicit_whitespace_between_elements(vm_for) -> None:
    vm = vm_for(ARITH)
    assert parse(vm, "sum", "1 + 22") == '- sum\n  - num: "1"\n  - num: "22"\n  - EOI: ""'


def test_atomic_rule_does_not_skip(vm_for) -> None:
    vm = vm_for(ARITH)
    assert parse(vm, "num", "12 3") == '- num: "12"'


def test_furthest_failure_is_reported(vm_for) -> None:
    vm = vm_for(ARITH)
    err = failure(vm, "sum", "1 +")
    assert err.variant == ParsingError(positives=("num",), negatives=())
    assert err.pos == 3


def test_eoi_is_expected_after_complete_prefix(vm_for) -> None:
    vm = vm_for(ARITH)
    err = failure(vm, "sum", "1 2")
    assert err.variant == ParsingError(positives=("EOI",), negatives=())
    assert err.pos == 2


def test_input_need_not_be_consumed(vm_for) -> None:
    vm = vm_for('a = { "a" }')
    assert parse(vm, "a", "abc") == '- a: "a"'


def test_silent_rule_keeps_children(vm_for) -> None:
    vm = vm_for('wrap = _{ x ~ x }\nx = { "x" }')
    assert parse(vm, "wrap", "xx") == '- x: "x"\n- x: "x"'


def test_atomic_rule_hides_inner_rules(vm_for) -> None:
    vm = vm_for('word = @{ letter+ }\nletter = { ASCII_ALPHA }')
    assert parse(vm, "word", "ab") == '- word: "ab"'


def test_compound_atomic_keeps_inner_rules(vm_for) -> None:
    vm = vm_for('string = ${ "\\"" ~ inner ~ "\\"" }\ninner = @{ (!"\\"" ~ ANY)* }')
    assert parse(vm, "string", '"hi there"') == '- string > inner: "hi there"'


def test_non_atomic_restores_skipping(vm_for) -> None:
    vm = vm_for('WHITESPACE = _{ " " }\nouter = @{ "<" ~ inner ~ ">" }\ninner = !{ "a" ~ "b" }')
    assert parse(vm, "outer", "<a b>") == '- outer > inner: "a b"'
    failure(vm, "outer", "< a b>")


def test_visible_whitespace_and_comment_nodes(vm_for) -> None:
    vm = vm_for('WHITESPACE = { " " | "\\n" }\nCOMMENT = { "#" ~ (!"\\n" ~ ANY)* }\nab = { "a" ~ "b" }')
    assert parse(vm, "ab", "a #c\nb") == '- ab\n  - WHITESPACE: " "\n  - COMMENT: "#c"\n  - WHITESPACE: "\\n"'


def test_negative_lookahead_reports_unexpected(vm_for) -> None:
    vm = vm_for('kw = { "if" }\nident = { !kw ~ ASCII_ALPHA+ }')
    assert parse(vm, "ident", "x") == '- ident: "x"'
    err = failure(vm, "ident", "if")
    assert err.variant == ParsingError(positives=(), negatives=("kw",))
    assert err.pos == 0


def test_positive_lookahead_consumes_nothing(vm_for) -> None:
    vm = vm_for('a = { &"ab" ~ "a" }')
    assert parse(vm, "a", "ab") == '- a: "a"'
    failure(vm, "a", "ac")


def test_choice_backtracks_nodes(vm_for) -> None:
    vm = vm_for('x = { "x" }\ny = { "y" }\ns = { x ~ "1" | x ~ y }')
    assert parse(vm, "s", "xy") == '- s\n  - x: "x"\n  - y: "y"'


def test_push_pop(vm_for) -> None:
    vm = vm_for('quoted = { PUSH("\\"" | "\'") ~ ASCII_ALPHA* ~ POP }')
    assert parse(vm, "quoted", "'ab'") == '- quoted: "\'ab\'"'
    err = failure(vm, "quoted", "'ab\"")
    assert err.variant == ParsingError(positives=("quoted",), negatives=())


def test_peek_slice_matches_bottom_to_top(vm_for) -> None:
    vm = vm_for('s = { PUSH("a") ~ PUSH("b") ~ PEEK[..] ~ PEEK[1..] ~ PEEK[..-1] }')
    assert parse(vm, "s", "ababba") == '- s: "ababba"'


def test_peek_all_matches_top_to_bottom(vm_for) -> None:
    vm = vm_for('s = { PUSH("a") ~ PUSH("b") ~ PEEK_ALL ~ DROP ~ PEEK ~ POP_ALL }')
    assert parse(vm, "s", "abbaaa") == '- s: "abbaaa"'


def test_stack_restored_on_backtrack(vm_for) -> None:
    vm = vm_for('s = { (PUSH("a") ~ "x" | "a") ~ PEEK_ALL }')
    # the failed first alternative must not leave "a" on the stack
    assert parse(vm, "s", "a") == '- s: "a"'


def test_tags(vm_for) -> None:
    vm = vm_for('id = @{ ASCII_ALPHA+ }\npair = { #key = id ~ "=" ~ #value = id }')
    assert parse(vm, "pair", "a=b") == '- pair\n  - (#key) id: "a"\n  - (#value) id: "b"'


def test_bounded_repetition(vm_for) -> None:
    vm = vm_for('three = { "a"{3} }\nupto = { "a"{,2} ~ "b" }')
    assert parse(vm, "three", "aaaa") == '- three: "aaa"'
    failure(vm, "three", "aa")
    assert parse(vm, "upto", "aab") == '- upto: "aab"'
    failure(vm, "upto", "aaab")


def test_insensitive_and_newline(vm_for) -> None:
    vm = vm_for('kw = { ^"select" ~ NEWLINE }')
    assert parse(vm, "kw", "SeLeCt\r\n") == '- kw: "SeLeCt\\r\\n"'


def test_unicode_properties(vm_for) -> None:
    vm = vm_for("word = @{ LETTER+ }\nup = { UPPERCASE_LETTER }")
    assert parse(vm, "word", "héllo1") == '- word: "héllo"'
    assert parse(vm, "up", "Ä") == '- up: "Ä"'
    failure(vm, "up", "a")


def test_user_rule_shadows_builtin(vm_for) -> None:
    vm = vm_for('ASCII_DIGIT = { "x" }\nd = { ASCII_DIGIT }')
    assert parse(vm, "d", "x") == '- d > ASCII_DIGIT: "x"'


def test_unknown_rule_is_custom_error(vm_for) -> None:
    vm = vm_for('a = { "a" }')
    err = failure(vm, "nope", "a")
    assert err.variant == CustomError("rule nope is undefined")
    assert err.pos == 0


def test_builtin_can_be_run_directly(vm_for) -> None:
    vm = vm_for('a = { "a" }')
    assert parse(vm, "ASCII_DIGIT", "7") == ""


def test_call_limit(vm_for) -> None:
    vm = vm_for('a = { b ~ b ~ b }\nb = { "b" }', call_limit=2)
    err = failure(vm, "a", "bbb")
    assert err.variant == CustomError("call limit reached")


def test_recursion_limit(vm_for) -> None:
    vm = vm_for('nest = { "(" ~ nest? ~ ")" }')
    err = failure(vm, "nest", "(" * 100000)
    assert err.variant == CustomError("recursion limit reached")


def test_vm_is_reusable(vm_for) -> None:
    vm = vm_for(ARITH)
    failure(vm, "sum", "x")
    assert parse(vm, "sum", "1") == '- sum\n  - num: "1"\n  - EOI: ""'


RIGHT_LIST = 'list = { "a" ~ ("," ~ list)? }'


@pytest.mark.parametrize("count", [500, 2000])
def test_deep_right_recursion_parses(count) -> None:
    grammar = compile_grammar(RIGHT_LIST).grammar
    text = ",".join(["a"] * count)
    nodes = GrammarRunner(grammar).run("list", text)
    assert len(nodes) == 1 and nodes[0].text == text
    depth, node = 1, nodes[0]
    while node.children:
        (node,) = node.children
        depth += 1
    assert depth == count
    assert node.text == "a"


def test_runner_still_stops_runaway_nesting() -> None:
    grammar = compile_grammar('nest = { "(" ~ nest? ~ ")" }').grammar
    with pytest.raises(ParseFailure) as exc:
        GrammarRunner(grammar).run("nest", "(" * 100000)
    assert exc.value.variant == CustomError("recursion limit reached")


def test_call_deep_restores_limits_and_propagates() -> None:
    limit = sys.getrecursionlimit()
    stack = threading.stack_size()
    assert call_deep(lambda a, b: a + b, 1, 2) == 3
    with pytest.raises(KeyError):
        call_deep({}.__getitem__, "missing")
    assert sys.getrecursionlimit() == limit
    assert threading.stack_size() == stack


def test_node_spans_are_byte_offsets(vm_for) -> None:
    vm = vm_for('w = { e ~ "x" }\ne = { "é" }')
    (node,) = vm.parse("w", "éx")
    assert (node.start, node.end) == (0, 3)
    assert node.text == "éx"
    (child,) = node.children
    assert (child.rule, child.start, child.end) == ("e", 0, 2)
