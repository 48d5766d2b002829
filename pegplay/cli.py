# pegplay/cli.py
"""pegplay CLI

Usage:
    $ pegplay check grammars/json.pest
    $ pegplay run grammars/json.pest value --text '{"a": [1, 2]}'
    $ pegplay run grammars/json.pest value --input doc.json --json
    $ pegplay fmt grammars/json.pest -w

Commands
--------
- check : compile the grammar and list diagnostics (exit 2 if any)
- run   : compile, then run a rule on the input; tree or JSON error (exit 1 on failure)
- fmt   : print the formatted grammar, or rewrite the file with -w

-D/--debug enables DEBUG logging on stderr plus short stage summaries.
"""

from __future__ import annotations
import argparse
import json
import logging
import pathlib
import sys
from typing import List, Optional
from .errors import GrammarSyntaxError, NoGrammarCompiled
from .grammar.loader import load_grammar_text
from .peg.runtime import call_deep
from .session import Session

# ------------------------------
# helpers
# ------------------------------

def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


def _compile(session: Session, path: str, debug: bool):
    src = load_grammar_text(path)
    if debug: _eprint("[DEBUG] grammar loaded | chars=%d" % len(src))
    diags = session.compile(src)
    if debug: _eprint("[DEBUG] compiled | diagnostics=%d" % len(diags))
    return diags


def _print_diagnostics(path: str, diags, as_json: bool) -> None:
    if as_json:
        print(json.dumps([d.as_dict() for d in diags], indent=2, ensure_ascii=False))
        return
    for d in diags:
        print(f"{path}:{d.from_}: {d.message}")

# ------------------------------
# commands
# ------------------------------

def cmd_check(args) -> int:
    session = Session()
    try:
        diags = _compile(session, args.file, args.debug)
    except (OSError, UnicodeDecodeError) as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2
    if diags:
        _print_diagnostics(args.file, diags, args.json)
        return 2
    if args.debug:
        _eprint("[DEBUG] rules: " + ", ".join(session.grammar.rule_names()))
    if args.json:
        print("[]")
    else:
        print(f"[CHECK OK] rules={len(session.grammar.rules)}")
    return 0


def cmd_run(args) -> int:
    session = Session(call_limit=args.call_limit)
    try:
        diags = _compile(session, args.file, args.debug)
        if args.text is not None:
            text = args.text
        else:
            text = pathlib.Path(args.input).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2
    if diags:
        _print_diagnostics(args.file, diags, args.json)
        return 2

    try:
        result = session.parse(args.rule, text)
    except NoGrammarCompiled as e:
        _eprint("[ERROR]", str(e))
        return 2
    if args.debug:
        _eprint("[DEBUG] rule=%s ok=%s" % (args.rule, result.ok))

    if args.json and result.ok:
        print(call_deep(_tree_json, result.nodes))
    else:
        print(result.output)
    return 0 if result.ok else 1


def _tree_json(nodes) -> str:
    return json.dumps([_node_json(n) for n in nodes], indent=2, ensure_ascii=False)


def _node_json(node) -> dict:
    out = {"rule": node.rule, "start": node.start, "end": node.end, "text": node.text}
    if node.tag is not None:
        out["tag"] = node.tag
    out["children"] = [_node_json(c) for c in node.children]
    return out


def cmd_fmt(args) -> int:
    from .fmt import format_grammar
    try:
        src = load_grammar_text(args.file)
        out = format_grammar(src)
    except GrammarSyntaxError as e:
        _eprint("[SYNTAX ERROR]")
        _eprint(str(e))
        return 2
    except (OSError, UnicodeDecodeError) as e:
        _eprint("[ERROR]", type(e).__name__, str(e))
        return 2

    if args.write:
        pathlib.Path(args.file).write_bytes(out.encode("utf-8"))
        if args.debug:
            _eprint(f"[DEBUG] wrote {args.file} bytes={len(out.encode('utf-8'))}")
        return 0
    sys.stdout.write(out)
    return 0

# ------------------------------
# entrypoint
# ------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="pegplay", description="pest grammar playground CLI")
    ap.add_argument("-D", "--debug", action="store_true", help="verbose logging on stderr")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check", help="compile a grammar and report diagnostics")
    p_check.add_argument("file", help=".pest grammar file")
    p_check.add_argument("--json", action="store_true", help="print diagnostics as JSON")
    p_check.set_defaults(func=cmd_check)

    p_run = sub.add_parser("run", help="run a rule of a grammar on input text")
    p_run.add_argument("file", help=".pest grammar file")
    p_run.add_argument("rule", help="start rule")
    src_group = p_run.add_mutually_exclusive_group(required=True)
    src_group.add_argument("--text", help="input text")
    src_group.add_argument("--input", help="input file path")
    p_run.add_argument("--json", action="store_true", help="print the parse tree as JSON")
    p_run.add_argument("--call-limit", type=int, default=None, help="maximum number of rule calls")
    p_run.set_defaults(func=cmd_run)

    p_fmt = sub.add_parser("fmt", help="format a grammar file")
    p_fmt.add_argument("file", help=".pest grammar file")
    p_fmt.add_argument("-w", "--write", action="store_true", help="rewrite the file in place")
    p_fmt.set_defaults(func=cmd_fmt)

    args = ap.parse_args(argv)
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    return int(args.func(args))

if __name__ == "__main__":
    sys.exit(main())
