"""RTF markup stripping.

Not a full RTF reader: ordered regex passes plus a brace-depth scan for the
groups that carry no readable text (font/color tables, stylesheets, metadata,
pictures). Later passes assume the earlier ones already removed their noise,
so the order in ``strip_rtf`` matters.
"""

import logging
import re

logger = logging.getLogger(__name__)


class RtfParseError(Exception):
    """Raised when the RTF group structure cannot be followed."""
    pass


# Escaped literals are swapped for private-use placeholders so the structural
# passes never mistake them for markup.
_BACKSLASH = "\ue000"
_OPEN_BRACE = "\ue001"
_CLOSE_BRACE = "\ue002"
_PLACEHOLDERS = {"\\": _BACKSLASH, "{": _OPEN_BRACE, "}": _CLOSE_BRACE}
_RESTORE = {v: k for k, v in _PLACEHOLDERS.items()}

_ESCAPED_LITERAL = re.compile(r"\\([\\{}])")
_UNICODE_ESCAPE = re.compile(r"\\u(-?\d+) ?(?:\\'[0-9a-fA-F]{2}|\?)?")
_HEX_ESCAPE = re.compile(r"\\'([0-9a-fA-F]{2})")
_BREAK_WORDS = re.compile(r"\\(?:par|line|row|sect|page|tab|cell)\b ?")
_SPECIAL_SYMBOLS = {"\\~": " ", "\\_": "-", "\\-": ""}

_HEADER = re.compile(r"^\s*\{\\rtf\d*(?:\\[a-z]+-?\d* ?)*")
_CONTROL_WORD = re.compile(r"\\[a-zA-Z]+-?\d* ?")
_CONTROL_SYMBOL = re.compile(r"\\[^a-zA-Z]")
_WHITESPACE = re.compile(r"\s+")

NAMED_GROUPS = ("fonttbl", "colortbl", "stylesheet", "info")

# Destinations whose content is never document text
_NON_TEXT_DESTINATIONS = (
    "pict",
    "object",
    "header",
    "headerl",
    "headerr",
    "headerf",
    "footer",
    "footerl",
    "footerr",
    "footerf",
    "listtable",
    "listoverridetable",
    "rsidtbl",
    "themedata",
    "colorschememapping",
    "latentstyles",
    "datastore",
    "xmlnstbl",
    "generator",
    "filetbl",
    "revtbl",
    "pgdsctbl",
)
_DESTINATION_GROUP = re.compile(
    r"\{\s*(?:\\\*|\\(?:" + "|".join(_NON_TEXT_DESTINATIONS) + r")(?![a-zA-Z]))"
)


def _decode_hex(match: re.Match) -> str:
    char = bytes([int(match.group(1), 16)]).decode("cp1252", errors="replace")
    return _PLACEHOLDERS.get(char, char)


def _decode_unicode(match: re.Match) -> str:
    code = int(match.group(1))
    if code < 0:
        code += 65536
    char = chr(code)
    return _PLACEHOLDERS.get(char, char)


def decode_escapes(rtf: str) -> str:
    """Protect escaped literals and decode ``\\uN`` / ``\\'hh`` characters."""
    text = _ESCAPED_LITERAL.sub(lambda m: _PLACEHOLDERS[m.group(1)], rtf)
    text = _UNICODE_ESCAPE.sub(_decode_unicode, text)
    text = _HEX_ESCAPE.sub(_decode_hex, text)
    text = _BREAK_WORDS.sub(" ", text)
    for symbol, replacement in _SPECIAL_SYMBOLS.items():
        text = text.replace(symbol, replacement)
    return text


def _group_end(text: str, start: int) -> int:
    """Index just past the brace that closes the group opened at ``start``."""
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    raise RtfParseError(f"Unbalanced group starting at offset {start}")


def strip_groups(text: str, opener: re.Pattern) -> str:
    """Remove every balanced group whose opening matches ``opener``."""
    parts = []
    pos = 0
    while True:
        match = opener.search(text, pos)
        if match is None:
            break
        parts.append(text[pos : match.start()])
        pos = _group_end(text, match.start())
    parts.append(text[pos:])
    return "".join(parts)


def _named_group(name: str) -> re.Pattern:
    return re.compile(r"\{\s*(?:\\\*\s*)?\\" + name + r"(?![a-zA-Z])")


def strip_header(text: str) -> str:
    return _HEADER.sub("", text, count=1)


def strip_named_groups(text: str) -> str:
    for name in NAMED_GROUPS:
        text = strip_groups(text, _named_group(name))
    return text


def strip_destination_groups(text: str) -> str:
    return strip_groups(text, _DESTINATION_GROUP)


def strip_control_words(text: str) -> str:
    return _CONTROL_WORD.sub("", text)


def strip_control_symbols(text: str) -> str:
    return _CONTROL_SYMBOL.sub("", text)


def strip_braces(text: str) -> str:
    return text.replace("{", "").replace("}", "")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def restore_literals(text: str) -> str:
    for placeholder, literal in _RESTORE.items():
        text = text.replace(placeholder, literal)
    return text


RTF_PASSES = (
    strip_header,
    strip_named_groups,
    strip_destination_groups,
    strip_control_words,
    strip_control_symbols,
    strip_braces,
    collapse_whitespace,
)


def strip_rtf(rtf: str) -> str:
    """Return the readable text of an RTF document."""
    try:
        text = decode_escapes(rtf)
        for rtf_pass in RTF_PASSES:
            text = rtf_pass(text)
        return restore_literals(text)
    except Exception as e:
        logger.warning(f"[RTF] Structured strip failed, using crude strip: {e}")
        return crude_strip_rtf(rtf)


def crude_strip_rtf(rtf: str) -> str:
    """Single-pass fallback for malformed RTF. Some table noise may survive."""
    text = re.sub(r"\{\\\*[^{}]*\}", " ", rtf)
    text = re.sub(r"\\'[0-9a-fA-F]{2}", "", text)
    text = re.sub(r"\\[a-zA-Z]+-?\d* ?", " ", text)
    text = re.sub(r"\\.", "", text)
    text = re.sub(r"[{}]", "", text)
    return collapse_whitespace(text)
