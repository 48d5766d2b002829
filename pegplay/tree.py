# pegplay/tree.py
"""Parse tree nodes produced by the VM and their textual rendering.

    - number: "42"                     leaf
    - pair > key: "a"                  single child, collapsed inline
    - list                             several children, one per line
      - item: "1"
      - item: "2"
"""

from __future__ import annotations
import json
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class ParseNode:
    rule: str
    start: int          # UTF-8 byte offsets into the input
    end: int
    text: str
    children: Tuple["ParseNode", ...] = ()
    tag: Optional[str] = None

    def with_tag(self, tag: str) -> "ParseNode":
        return replace(self, tag=tag)


def escape_text(text: str) -> str:
    """Double-quoted, single-line, unambiguous form of matched text."""
    return json.dumps(text, ensure_ascii=False)


def format_node(node: ParseNode, indent_level: int = 0, is_newline: bool = True) -> str:
    indent = "  " * indent_level if is_newline else ""
    dash = "- " if is_newline else ""
    tag = f"(#{node.tag}) " if node.tag is not None else ""
    head = f"{indent}{dash}{tag}{node.rule}"

    children = node.children
    if not children:
        return f"{head}: {escape_text(node.text)}"
    if len(children) == 1:
        return f"{head} > {format_node(children[0], indent_level, False)}"
    lines = [format_node(child, indent_level + 1, True) for child in children]
    return head + "\n" + "\n".join(lines)


def render(nodes: Iterable[ParseNode]) -> str:
    return "\n".join(format_node(node, 0, True) for node in nodes)
