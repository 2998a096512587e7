"""
Text helpers: filesystem-safe labels, short random suffixes and label cleanup.
"""

import random
import re
import string
import unicodedata
from typing import List, Optional

_COMBINING_RE = re.compile(r"[\u0300-\u036f]")
_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9А-Яа-я_\-\s]")
_WS_RE = re.compile(r"\s+")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def slugify(value: Optional[str], max_len: int = 40, fallback: str = "item") -> str:
    """
    Make a label safe for use inside a file name.

    Strips diacritics, drops punctuation (keeps ``_`` and ``-``), collapses
    whitespace to underscores and caps the length.

    Example:
        >>> slugify("group_Птичка Наличка!")
        'group_Птичка_Наличка'
        >>> slugify("Café  déjà vu")
        'Cafe_deja_vu'
        >>> slugify("???")
        'item'
    """
    s = unicodedata.normalize("NFKD", value or fallback)
    s = _COMBINING_RE.sub("", s)
    s = _UNSAFE_RE.sub("", s).strip()
    s = _WS_RE.sub("_", s)
    return s[:max_len] or fallback


def random_suffix(length: int = 6, rng: Optional[random.Random] = None) -> str:
    """Short lowercase alphanumeric suffix for collision-resistant names."""
    rng = rng or random
    return "".join(rng.choice(_SUFFIX_ALPHABET) for _ in range(length))


def text_lines(text: Optional[str]) -> List[str]:
    """Non-empty, stripped lines of a text block."""
    return [s.strip() for s in (text or "").split("\n") if s.strip()]


def first_label_line(text: Optional[str], skip_pattern: Optional[str] = None) -> str:
    """
    Pick the display label out of a multi-line text block.

    Returns the first line not matching ``skip_pattern`` (e.g. ``^#`` for
    hashtag-style captions), else the first line, else "".
    """
    lines = text_lines(text)
    if skip_pattern:
        skip = re.compile(skip_pattern)
        for line in lines:
            if not skip.search(line):
                return line
    return lines[0] if lines else ""


def normalize_text(text: Optional[str]) -> str:
    """Collapse internal whitespace and strip."""
    return _WS_RE.sub(" ", text or "").strip()
