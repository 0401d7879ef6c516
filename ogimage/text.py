"""Text cleanup for strings drawn onto preview images."""

import re

# U+2000-U+200F (spaces, zero-width chars, direction marks) and
# U+2028-U+202F (separators, embedding controls, narrow no-break space)
_SPECIAL_SPACES = re.compile(
    r"[\N{EN QUAD}-\N{RIGHT-TO-LEFT MARK}\N{LINE SEPARATOR}-\N{NARROW NO-BREAK SPACE}]+"
)
# Dash family with its surrounding whitespace, so re-running is a no-op
_DASHES = re.compile(r"\s*[\N{TWO-EM DASH}\N{THREE-EM DASH}\N{EM DASH}\N{EN DASH}\-]+\s*")
_DOUBLE_QUOTES = re.compile(r"[\N{LEFT DOUBLE QUOTATION MARK}\N{RIGHT DOUBLE QUOTATION MARK}]")
_SINGLE_QUOTES = re.compile(r"[\N{LEFT SINGLE QUOTATION MARK}\N{RIGHT SINGLE QUOTATION MARK}]")

SPACED_EM_DASH = " \N{EM DASH} "
ELLIPSIS = "\N{HORIZONTAL ELLIPSIS}"


def sanitize_text(text: str) -> str:
    """Replace characters pixel fonts tend not to cover with safe ones.

    Idempotent: ``sanitize_text(sanitize_text(s)) == sanitize_text(s)``.
    """
    text = _SPECIAL_SPACES.sub(" ", text)
    text = _DASHES.sub(SPACED_EM_DASH, text)
    text = _DOUBLE_QUOTES.sub('"', text)
    text = _SINGLE_QUOTES.sub("'", text)
    text = text.replace(ELLIPSIS, "...")
    return text.strip()
