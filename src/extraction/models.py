"""Value objects for the extraction pipeline.

Everything here lives for a single request: a ``SourceFile`` goes in, an
``ExtractionResult`` comes out.
"""

from dataclasses import dataclass, field
from enum import Enum


class DocumentFormat(str, Enum):
    """Extraction family selected from the declared MIME type."""

    PLAIN_TEXT = "plain_text"
    RTF = "rtf"
    DOCX = "docx"
    PDF = "pdf"
    UNSUPPORTED = "unsupported"


class ExtractionStrategy(str, Enum):
    """Which method produced the text. Reported, never branched on."""

    PLAIN_TEXT = "plain_text"
    RTF_PARSE = "rtf_parse"
    DOCX_LIBRARY = "docx_library"
    PDF_STRUCTURED = "pdf_structured"
    PDF_CONTENTSTREAM = "pdf_contentstream"
    PDF_RAWSCAN = "pdf_rawscan"


# Minimum cleaned length a strategy's output needs to count as a success.
STRATEGY_MIN_LENGTH: dict[ExtractionStrategy, int] = {
    ExtractionStrategy.PLAIN_TEXT: 5,
    ExtractionStrategy.RTF_PARSE: 5,
    ExtractionStrategy.DOCX_LIBRARY: 10,
    ExtractionStrategy.PDF_STRUCTURED: 50,
    ExtractionStrategy.PDF_CONTENTSTREAM: 20,
    ExtractionStrategy.PDF_RAWSCAN: 10,
}


class FailureKind(str, Enum):
    """Failure taxonomy. Everything but INTERNAL_ERROR is the caller's input."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    SIGNATURE_MISMATCH = "signature_mismatch"
    SIZE_MISMATCH = "size_mismatch"
    ENCRYPTED = "encrypted"
    EXTRACTION_EXHAUSTED = "extraction_exhausted"
    LIBRARY_FAILURE = "library_failure"
    TOO_SHORT = "too_short"
    INTERNAL_ERROR = "internal_error"

    @property
    def is_client_error(self) -> bool:
        return self is not FailureKind.INTERNAL_ERROR


class ExtractionError(Exception):
    """Raised by extractors when text cannot be produced."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.LIBRARY_FAILURE):
        self.kind = kind
        super().__init__(message)


@dataclass(frozen=True)
class SourceFile:
    """An uploaded file as received by the service."""

    content: bytes
    mime_type: str
    file_name: str | None = None
    declared_size: int | None = None

    @property
    def size_matches(self) -> bool:
        return self.declared_size is None or self.declared_size == len(self.content)


@dataclass(frozen=True)
class ExtractionSuccess:
    """Cleaned text plus how it was obtained."""

    text: str
    method: ExtractionStrategy
    extracted_length: int
    original_length: int
    truncated: bool = False
    pages_processed: int | None = None
    page_count: int | None = None

    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ExtractionFailure:
    """A human-readable reason the file yielded no usable text."""

    reason: str
    kind: FailureKind

    success: bool = field(default=False, init=False)


ExtractionResult = ExtractionSuccess | ExtractionFailure


@dataclass(frozen=True)
class RawExtraction:
    """Uncleaned extractor output, before the orchestrator's gate."""

    text: str
    method: ExtractionStrategy
    truncated: bool = False
    pages_processed: int | None = None
    page_count: int | None = None
