"""Grammar file loader"""

from __future__ import annotations
from pathlib    import Path


def load_grammar_text(path: str) -> str:
    """
    Read a grammar file as UTF-8. Line endings are kept as-is so that
    diagnostic byte offsets match the file on disk.
    """
    return Path(path).read_bytes().decode("utf-8")
