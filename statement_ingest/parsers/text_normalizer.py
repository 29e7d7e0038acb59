"""Shallow cleanup of raw statement text and transaction descriptions.

Only delimiter noise and excess whitespace are touched. The order and count of
every other character is preserved, since amount and date parsing downstream
depend on it.
"""

import re

# Applied in this order; later rules see the output of earlier ones
NORMALIZATION_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\|{2,}"), "|"),
    (re.compile(r"-{2,}"), "-"),
    (re.compile(r"={2,}"), "="),
    (re.compile(r"[*#~`]"), ""),
    (re.compile(r"[ \t]{3,}"), " "),  # 1-2 spaces keep column alignment
    (re.compile(r"\n{4,}"), "\n\n\n"),  # at most two blank lines
)

# Each match becomes a single space in descriptions
CLEANUP_SYMBOLS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\|{2,}"),
    re.compile(r"-{2,}"),
    re.compile(r"={2,}"),
    re.compile(r"_{2,}"),
    re.compile(r"[ \t]{3,}"),
    re.compile(r"[*#~`]"),
)

_WHITESPACE = re.compile(r"\s+")


def _apply_rules(text: str) -> str:
    for pattern, replacement in NORMALIZATION_RULES:
        text = pattern.sub(replacement, text)
    return text


def normalize_statement_text(text: str) -> str:
    """
    Remove delimiter noise and excess whitespace, keeping row/column layout.

    The ordered rules are re-applied until the text stops changing: removing a
    noise symbol can make two delimiters adjacent ("-*-" becomes "--"), and
    the output must be stable under another pass.
    """
    if not text:
        return ""

    previous = None
    while previous != text:
        previous = text
        text = _apply_rules(text)
    return text


def quick_clean(text: str) -> str:
    """Minimal cleanup: normalize and trim."""
    return normalize_statement_text(text).strip()


def clean_description(description: str | None) -> str:
    """Replace noise symbols with spaces, then collapse whitespace and trim."""
    if not description:
        return ""

    cleaned = description
    for pattern in CLEANUP_SYMBOLS:
        cleaned = pattern.sub(" ", cleaned)

    return _WHITESPACE.sub(" ", cleaned).strip()
