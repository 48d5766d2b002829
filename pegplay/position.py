# pegplay/position.py
"""Byte offset <-> line/column helpers.

Offsets handed to callers are UTF-8 byte offsets; the front-end and the VM
work on Python char indices and convert at the boundary with `byte_offset`
or a `byte_offsets` table.
"""

from __future__ import annotations
from typing import List, Tuple


def byte_offset(text: str, index: int) -> int:
    """Char index -> UTF-8 byte offset."""
    if index <= 0:
        return 0
    return len(text[:index].encode("utf-8", "surrogatepass"))


def _utf8_width(ch: str) -> int:
    cp = ord(ch)
    if cp < 0x80:
        return 1
    if cp < 0x800:
        return 2
    if cp < 0x10000:
        return 3
    return 4


def byte_offsets(text: str) -> List[int]:
    """UTF-8 byte offset of every char index, `len(text)` included."""
    table = [0]
    total = 0
    for ch in text:
        total += _utf8_width(ch)
        table.append(total)
    return table


def line_col(offset: int, source: str) -> Tuple[int, int]:
    """Resolve a byte offset to a 0-based (line, column).

    `\\n`, lone `\\r` and `\\r\\n` each count as one line break. A character
    is always consumed whole, so an offset inside a multi-byte sequence
    resolves to the column after that character.
    """
    if offset <= 0:
        return 0, 0

    line, col = 1, 1
    consumed = 0
    i, n = 0, len(source)
    while consumed < offset and i < n:
        ch = source[i]
        if ch == "\r":
            if i + 1 < n and source[i + 1] == "\n" and consumed + 1 < offset:
                i += 2
                consumed += 2
            else:
                i += 1
                consumed += 1
            line, col = line + 1, 1
        elif ch == "\n":
            i += 1
            consumed += 1
            line, col = line + 1, 1
        else:
            i += 1
            consumed += _utf8_width(ch)
            col += 1
    return line - 1, col - 1


def format_line_col(offset: int, source: str) -> str:
    line, col = line_col(offset, source)
    return f"({line}, {col})"
