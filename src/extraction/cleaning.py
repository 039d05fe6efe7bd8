"""Post-extraction text cleanup shared by every format.

Each rule is a pure ``str -> str`` function and ``clean_text`` applies them in
a fixed order. Control characters must go before whitespace is collapsed,
otherwise a stray ``\\x0c`` between two words survives as a glued pair.

The missing-space repair is a lossy heuristic: camel-cased product names
(``iPhone``, ``PayPal``) get split just like genuinely merged words.
"""

import re
from collections.abc import Callable

CleaningRule = Callable[[str], str]

# C0 controls except \t \n \r, plus DEL
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Lowercase glued to a capitalized word: "wordWord". All-caps runs ("wordONE")
# are left alone.
_LOWER_UPPER = re.compile(r"([a-z])(?=[A-Z][a-z])")
_LETTER_DIGIT = re.compile(r"([A-Za-z])(?=\d)")
_DIGIT_LETTER = re.compile(r"(\d)(?=[A-Za-z])")

_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def strip_control_characters(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def repair_missing_spaces(text: str) -> str:
    """Split ``wordWord``, ``Section5`` and ``10am`` style joins."""
    text = _LOWER_UPPER.sub(r"\1 ", text)
    text = _LETTER_DIGIT.sub(r"\1 ", text)
    return _DIGIT_LETTER.sub(r"\1 ", text)


def collapse_whitespace(text: str) -> str:
    """Single spaces within lines; at most one blank line between paragraphs."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    return _EXCESS_NEWLINES.sub("\n\n", text)


def trim_lines(text: str) -> str:
    lines = [line.strip() for line in text.split("\n")]
    # Stripping can turn "  \n" runs into new blank-line runs
    return _EXCESS_NEWLINES.sub("\n\n", "\n".join(lines)).strip()


CLEANING_RULES: tuple[CleaningRule, ...] = (
    strip_control_characters,
    repair_missing_spaces,
    collapse_whitespace,
    trim_lines,
)


def clean_text(text: str) -> str:
    """Normalize raw extractor output. Deterministic and idempotent."""
    if not text:
        return ""
    for rule in CLEANING_RULES:
        text = rule(text)
    return text
