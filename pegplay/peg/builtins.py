# pegplay/peg/builtins.py
"""Builtin rule names.

- KEYWORDS    : names the grammar may not define (they are operations)
- VM_BUILTINS : handled directly by the VM (stack, SOI/EOI)
- PRIMITIVES  : lowered by the optimizer to plain matchers
- PROPERTIES  : Unicode general categories / binary properties
"""

from __future__ import annotations
from typing import Dict
from .ast import Any, Choice, Literal, Node, Range

KEYWORDS = frozenset({
    "_", "ANY", "DROP", "EOI", "PEEK", "PEEK_ALL", "POP", "POP_ALL", "PUSH", "SOI",
})

VM_BUILTINS = frozenset({
    "SOI", "EOI", "PEEK", "PEEK_ALL", "POP", "POP_ALL", "DROP",
})

PRIMITIVES: Dict[str, Node] = {
    "ANY":                 Any(),
    "ASCII_DIGIT":         Range("0", "9"),
    "ASCII_NONZERO_DIGIT": Range("1", "9"),
    "ASCII_BIN_DIGIT":     Range("0", "1"),
    "ASCII_OCT_DIGIT":     Range("0", "7"),
    "ASCII_HEX_DIGIT":     Choice((Range("0", "9"), Range("a", "f"), Range("A", "F"))),
    "ASCII_ALPHA_LOWER":   Range("a", "z"),
    "ASCII_ALPHA_UPPER":   Range("A", "Z"),
    "ASCII_ALPHA":         Choice((Range("a", "z"), Range("A", "Z"))),
    "ASCII_ALPHANUMERIC":  Choice((Range("a", "z"), Range("A", "Z"), Range("0", "9"))),
    "ASCII":               Range("\x00", "\x7f"),
    "NEWLINE":             Choice((Literal("\n"), Literal("\r\n"), Literal("\r"))),
}

# builtin name -> `regex` property name
PROPERTIES: Dict[str, str] = {
    # general categories
    "LETTER":                "Letter",
    "CASED_LETTER":          "Cased_Letter",
    "UPPERCASE_LETTER":      "Uppercase_Letter",
    "LOWERCASE_LETTER":      "Lowercase_Letter",
    "TITLECASE_LETTER":      "Titlecase_Letter",
    "MODIFIER_LETTER":       "Modifier_Letter",
    "OTHER_LETTER":          "Other_Letter",
    "MARK":                  "Mark",
    "NONSPACING_MARK":       "Nonspacing_Mark",
    "SPACING_MARK":          "Spacing_Mark",
    "ENCLOSING_MARK":        "Enclosing_Mark",
    "NUMBER":                "Number",
    "DECIMAL_NUMBER":        "Decimal_Number",
    "LETTER_NUMBER":         "Letter_Number",
    "OTHER_NUMBER":          "Other_Number",
    "PUNCTUATION":           "Punctuation",
    "CONNECTOR_PUNCTUATION": "Connector_Punctuation",
    "DASH_PUNCTUATION":      "Dash_Punctuation",
    "OPEN_PUNCTUATION":      "Open_Punctuation",
    "CLOSE_PUNCTUATION":     "Close_Punctuation",
    "INITIAL_PUNCTUATION":   "Initial_Punctuation",
    "FINAL_PUNCTUATION":     "Final_Punctuation",
    "OTHER_PUNCTUATION":     "Other_Punctuation",
    "SYMBOL":                "Symbol",
    "MATH_SYMBOL":           "Math_Symbol",
    "CURRENCY_SYMBOL":       "Currency_Symbol",
    "MODIFIER_SYMBOL":       "Modifier_Symbol",
    "OTHER_SYMBOL":          "Other_Symbol",
    "SEPARATOR":             "Separator",
    "SPACE_SEPARATOR":       "Space_Separator",
    "LINE_SEPARATOR":        "Line_Separator",
    "PARAGRAPH_SEPARATOR":   "Paragraph_Separator",
    "OTHER":                 "Other",
    "CONTROL":               "Control",
    "FORMAT":                "Format",
    "SURROGATE":             "Surrogate",
    "PRIVATE_USE":           "Private_Use",
    "UNASSIGNED":            "Unassigned",
    # binary properties
    "ALPHABETIC":            "Alphabetic",
    "CASED":                 "Cased",
    "DASH":                  "Dash",
    "DIACRITIC":             "Diacritic",
    "HEX_DIGIT":             "Hex_Digit",
    "IDEOGRAPHIC":           "Ideographic",
    "LOWERCASE":             "Lowercase",
    "MATH":                  "Math",
    "UPPERCASE":             "Uppercase",
    "WHITE_SPACE":           "White_Space",
    "XID_CONTINUE":          "XID_Continue",
    "XID_START":             "XID_Start",
}

BUILTINS = frozenset(VM_BUILTINS | set(PRIMITIVES) | set(PROPERTIES))


def is_builtin(name: str) -> bool:
    return name in BUILTINS
