"""PDF text extraction cascade.

PDFs range from clean text layers to malformed files where only brute-force
pattern matching recovers anything. Strategies run cheapest and most specific
first; the first one whose cleaned output clears its minimum length wins:

1. pdf_structured    - pypdf's layout-aware ``extract_text`` over every page
2. pdf_contentstream - text-showing operators read straight from each page's
                       content stream, capped at ``max_pages``
3. pdf_rawscan       - regex scan of the raw bytes for string literals and
                       long alphabetic runs

Encrypted files fail immediately: none of the fallbacks can read them either.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from io import BytesIO

from pypdf import PdfReader
from pypdf.generic import ArrayObject, TextStringObject

from src.extraction.cleaning import clean_text
from src.extraction.extractors import TextExtractor
from src.extraction.models import (
    DocumentFormat,
    ExtractionError,
    ExtractionStrategy,
    FailureKind,
    RawExtraction,
    STRATEGY_MIN_LENGTH,
)
from src.observability.metrics import record_strategy_attempt

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10

ENCRYPTED_MESSAGE = (
    "PDF is encrypted and requires a password. "
    "Please remove the password protection and upload it again."
)
EXHAUSTED_MESSAGE = (
    "Could not extract readable text from the PDF with any available method. "
    "The PDF may be encrypted, scanned/image-based, or corrupted."
)

# TJ kerning more negative than this (thousandths of an em) reads as a word gap
_KERNING_SPACE = -200


@dataclass(frozen=True)
class PdfAttempt:
    """Output of one strategy, before gating."""

    text: str
    pages_processed: int | None = None
    page_count: int | None = None
    truncated: bool = False


@dataclass(frozen=True)
class PdfStrategy:
    """A named extraction function ``(content, max_pages) -> PdfAttempt``."""

    method: ExtractionStrategy
    run: Callable[[bytes, int], PdfAttempt]

    @property
    def min_length(self) -> int:
        return STRATEGY_MIN_LENGTH[self.method]


def is_encrypted(content: bytes) -> bool:
    """Cheap check for an encryption dictionary in the raw structure."""
    return b"/Encrypt" in content


def _open_reader(content: bytes) -> PdfReader:
    reader = PdfReader(BytesIO(content), strict=False)
    if reader.is_encrypted:
        raise ExtractionError(ENCRYPTED_MESSAGE, kind=FailureKind.ENCRYPTED)
    return reader


# ============================================
# Strategy 1: structured text layer
# ============================================


def extract_structured(content: bytes, max_pages: int) -> PdfAttempt:
    """Text layer via pypdf. Not page-capped: this is the cheap path."""
    reader = _open_reader(content)

    text_parts = []
    for page_num, page in enumerate(reader.pages, 1):
        try:
            page_text = page.extract_text()
        except Exception as e:
            logger.debug(f"[PDF] extract_text failed on page {page_num}: {e}")
            continue
        if page_text and page_text.strip():
            text_parts.append(page_text)

    page_count = len(reader.pages)
    return PdfAttempt(
        text="\n\n".join(text_parts), pages_processed=page_count, page_count=page_count
    )


# ============================================
# Strategy 2: content-stream operators
# ============================================


def _decode_operand(value) -> str:
    # Simple-font show strings are WinAnsi bytes, not PDFDocEncoding
    if isinstance(value, TextStringObject) and value.autodetect_pdfdocencoding:
        value = value.original_bytes
    if isinstance(value, bytes):
        return value.decode("cp1252", errors="replace")
    if isinstance(value, str):
        return str(value)
    return ""


def _show_array(array: ArrayObject) -> str:
    parts = []
    for item in array:
        if isinstance(item, (str, bytes)):
            parts.append(_decode_operand(item))
        else:
            try:
                if float(item) < _KERNING_SPACE:
                    parts.append(" ")
            except (TypeError, ValueError):
                continue
    return "".join(parts)


def page_content_text(page) -> str:
    """Concatenate the strings shown by a page's text operators."""
    contents = page.get_contents()
    if contents is None:
        return ""

    chunks = []
    for operands, operator in contents.operations:
        if operator in (b"Tj", b"'") and operands:
            if operator == b"'":
                chunks.append("\n")
            chunks.append(_decode_operand(operands[0]))
        elif operator == b'"' and len(operands) >= 3:
            chunks.append("\n")
            chunks.append(_decode_operand(operands[2]))
        elif operator == b"TJ" and operands:
            chunks.append(_show_array(operands[0]))
        elif operator in (b"Td", b"TD", b"T*", b"ET"):
            chunks.append("\n")
    return "".join(chunks)


def extract_content_streams(content: bytes, max_pages: int) -> PdfAttempt:
    """Page-by-page operator parse, delimited with ``--- Page N ---``."""
    reader = _open_reader(content)
    page_count = len(reader.pages)
    limit = min(page_count, max_pages)

    text_parts = []
    for index in range(limit):
        page_num = index + 1
        try:
            page_text = page_content_text(reader.pages[index])
        except Exception as e:
            logger.warning(f"[PDF] Failed to read content stream of page {page_num}: {e}")
            continue
        if page_text.strip():
            text_parts.append(f"--- Page {page_num} ---\n{page_text.strip()}")

    if page_count > limit:
        logger.info(f"[PDF] Content-stream parse capped at {limit} of {page_count} pages")

    return PdfAttempt(
        text="\n\n".join(text_parts),
        pages_processed=limit,
        page_count=page_count,
        truncated=page_count > limit,
    )


# ============================================
# Strategy 3: raw byte-pattern scan
# ============================================

_LITERAL = r"\((?:\\.|[^\\()])*\)"
# Lookahead keeps a digit run from being split across repetitions
_NUMBER = r"-?(?:\d+(?:\.\d*)?|\.\d+)(?![\d.])"
# Only strings handed to a text-showing operator count; dictionary values
# such as /Producer (...) in the Info dictionary never do.
_SHOW_OPERATOR = r"\s*(?:Tj|'|\")"
_TJ_ARRAY = re.compile(r"\[((?:\s*(?:" + _LITERAL + r"|" + _NUMBER + r"))*\s*)\]\s*TJ")
_ARRAY_TOKEN = re.compile(r"\(((?:\\.|[^\\()])*)\)|(" + _NUMBER + r")")
_SHOWN_LITERAL = re.compile(r"\(((?:\\.|[^\\()])*)\)" + _SHOW_OPERATOR)
_SHOWN_HEX = re.compile(r"<([0-9A-Fa-f\s]{4,})>" + _SHOW_OPERATOR)
_TEXT_OBJECT = re.compile(r"\bBT\b(.*?)\bET\b", re.S)
_STREAM_BODY = re.compile(r"\bstream\r?\n(.*?)\bendstream\b", re.S)
_NON_TEXT_STREAM = re.compile(r"/(?:Type\s*/Metadata|Subtype\s*/(?:XML|Image))\b")
_LITERAL_ESCAPE = re.compile(r"\\([nrtbf()\\]|[0-7]{1,3}|\r?\n)")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\r\t]")
_PDF_KEYWORDS = re.compile(
    r"\b(?:obj|endobj|stream|endstream|xref|trailer|startxref|BT|ET|Tf|Td|TD|Tj|TJ|Tm|Tc|Tw|Tz|TL)\b"
)
_READABLE_RUN = re.compile(r"[A-Za-z][A-Za-z\s,.!?;:'\"()-]{20,}")
_HAS_LETTER = re.compile(r"[A-Za-z]")

_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f"}

# Minimum share of printable characters for a literal to count as text
_PRINTABLE_RATIO = 0.9

# How far back from a ``stream`` keyword to look for its dictionary
_STREAM_HEADER_WINDOW = 512


def unescape_literal(raw: str) -> str:
    """Resolve PDF string-literal escapes (``\\n``, ``\\(``, ``\\053``...)."""

    def replace(match: re.Match) -> str:
        esc = match.group(1)
        if esc[0] in "01234567":
            return chr(int(esc, 8) & 0xFF)
        if esc in ("\n", "\r\n"):
            return ""
        return _SIMPLE_ESCAPES.get(esc, esc)

    return _LITERAL_ESCAPE.sub(replace, raw)


def _readable(text: str) -> str | None:
    """Printable form of a candidate string, or None if it is not text-like."""
    if not text:
        return None
    printable = len(text) - len(_NON_PRINTABLE.findall(text))
    if printable / len(text) < _PRINTABLE_RATIO:
        return None
    text = _NON_PRINTABLE.sub(" ", text).strip()
    if len(text) > 5 and _HAS_LETTER.search(text):
        return text
    return None


def _join_array(body: str) -> str:
    parts = []
    for literal, number in _ARRAY_TOKEN.findall(body):
        if number:
            if float(number) < _KERNING_SPACE:
                parts.append(" ")
        else:
            parts.append(unescape_literal(literal))
    return "".join(parts)


def _decode_hex(body: str) -> str:
    digits = re.sub(r"\s", "", body)
    if len(digits) % 2:
        digits += "0"
    return bytes.fromhex(digits).decode("latin-1")


def _content_stream_bodies(source: str) -> list[str]:
    """Uncompressed stream bodies, minus XMP metadata and images."""
    bodies = []
    for match in _STREAM_BODY.finditer(source):
        header = source[max(0, match.start() - _STREAM_HEADER_WINDOW) : match.start()]
        header = header[header.rfind("obj") + len("obj") :]
        if not _NON_TEXT_STREAM.search(header):
            bodies.append(match.group(1))
    return bodies


def scan_raw_text(content: bytes) -> list[str]:
    """Recover shown text from raw PDF bytes.

    Strings are taken only from ``BT ... ET`` text objects, as operands of
    ``Tj``/``TJ``/``'``/``"``. Long alphabetic runs are taken only from
    uncompressed content streams.
    """
    source = content.decode("latin-1")
    found: list[str] = []

    def collect(pattern: re.Pattern, decode: Callable[[str], str], text: str) -> str:
        def take(match: re.Match) -> str:
            candidate = _readable(decode(match.group(1)))
            if candidate:
                found.append(candidate)
            return " "

        return pattern.sub(take, text)

    for block in _TEXT_OBJECT.findall(source):
        # Kerned TJ arrays first so split words are rejoined before the
        # literals inside them are picked up individually.
        block = collect(_TJ_ARRAY, _join_array, block)
        block = collect(_SHOWN_LITERAL, unescape_literal, block)
        collect(_SHOWN_HEX, _decode_hex, block)

    for body in _content_stream_bodies(source):
        leftover = _TEXT_OBJECT.sub(" ", body)
        leftover = _PDF_KEYWORDS.sub(" ", _NON_PRINTABLE.sub(" ", leftover))
        found.extend(run.strip() for run in _READABLE_RUN.findall(leftover))
    return found


def extract_raw_scan(content: bytes, max_pages: int) -> PdfAttempt:
    """Last resort for files pypdf cannot parse at all."""
    return PdfAttempt(text=" ".join(scan_raw_text(content)))


DEFAULT_STRATEGIES: tuple[PdfStrategy, ...] = (
    PdfStrategy(ExtractionStrategy.PDF_STRUCTURED, extract_structured),
    PdfStrategy(ExtractionStrategy.PDF_CONTENTSTREAM, extract_content_streams),
    PdfStrategy(ExtractionStrategy.PDF_RAWSCAN, extract_raw_scan),
)


class PdfCascade(TextExtractor):
    """Runs PDF strategies in order and stops at the first plausible result."""

    format = DocumentFormat.PDF

    def __init__(
        self,
        strategies: Sequence[PdfStrategy] | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ):
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.max_pages = max_pages

    def extract(self, content: bytes) -> RawExtraction:
        if is_encrypted(content):
            logger.info("[PDF] /Encrypt marker found, not attempting extraction")
            raise ExtractionError(ENCRYPTED_MESSAGE, kind=FailureKind.ENCRYPTED)

        for strategy in self.strategies:
            method = strategy.method.value
            logger.info(f"[PDF] Attempting {method} extraction")
            try:
                attempt = strategy.run(content, self.max_pages)
            except ExtractionError as e:
                if e.kind is FailureKind.ENCRYPTED:
                    record_strategy_attempt(method, "encrypted")
                    raise
                logger.warning(f"[PDF] {method} failed: {e}")
                record_strategy_attempt(method, "error")
                continue
            except Exception as e:
                logger.warning(f"[PDF] {method} failed: {e}")
                record_strategy_attempt(method, "error")
                continue

            cleaned_length = len(clean_text(attempt.text))
            if cleaned_length >= strategy.min_length:
                logger.info(f"[PDF] {method} succeeded: {cleaned_length} characters")
                record_strategy_attempt(method, "success")
                return RawExtraction(
                    text=attempt.text,
                    method=strategy.method,
                    truncated=attempt.truncated,
                    pages_processed=attempt.pages_processed,
                    page_count=attempt.page_count,
                )

            logger.info(
                f"[PDF] {method} produced {cleaned_length} characters "
                f"(need {strategy.min_length}), falling back"
            )
            record_strategy_attempt(method, "insufficient")

        raise ExtractionError(EXHAUSTED_MESSAGE, kind=FailureKind.EXTRACTION_EXHAUSTED)
