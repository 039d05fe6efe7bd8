"""Extraction orchestrator.

Pipeline:
1. Check the declared size against the buffer
2. Sniff the format from the declared MIME type
3. Verify magic bytes for binary formats
4. Dispatch to the format's extractor
5. Clean the text and apply the plausibility gate

``extract`` never raises; every problem comes back as an ``ExtractionFailure``.
"""

import logging

from src.core.config import get_settings
from src.extraction.cleaning import clean_text
from src.extraction.extractors import (
    DocxExtractor,
    PlainTextExtractor,
    RtfExtractor,
    TextExtractor,
)
from src.extraction.models import (
    DocumentFormat,
    ExtractionError,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    FailureKind,
    SourceFile,
    STRATEGY_MIN_LENGTH,
)
from src.extraction.pdf import DEFAULT_MAX_PAGES, PdfCascade
from src.extraction.sniffer import sniff_format, unsupported_message, verify_signature
from src.observability.metrics import record_extraction, track_duration

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_LENGTH = 5

INTERNAL_ERROR_MESSAGE = "Unexpected error while extracting text. Please try again or contact support."


class ExtractionPipeline:
    """Routes a file to the right extractor and validates the result."""

    def __init__(
        self,
        extractors: list[TextExtractor] | None = None,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        pdf_max_pages: int = DEFAULT_MAX_PAGES,
    ):
        if extractors is None:
            extractors = [
                PlainTextExtractor(),
                RtfExtractor(),
                DocxExtractor(),
                PdfCascade(max_pages=pdf_max_pages),
            ]
        self.extractors: dict[DocumentFormat, TextExtractor] = {
            extractor.format: extractor for extractor in extractors
        }
        self.min_text_length = min_text_length

    def extract(self, file: SourceFile) -> ExtractionResult:
        """Extract cleaned text from ``file``."""
        fmt = sniff_format(file.mime_type)
        label = file.file_name or "unnamed"

        with track_duration(fmt.value):
            try:
                result = self._extract(file, fmt)
            except ExtractionError as e:
                logger.info(f"[Pipeline] Extraction failed for {label} ({fmt.value}): {e.kind.value}: {e}")
                result = ExtractionFailure(reason=str(e), kind=e.kind)
            except Exception as e:
                logger.error(f"[Pipeline] Unexpected error extracting {label}: {e}", exc_info=True)
                result = ExtractionFailure(
                    reason=INTERNAL_ERROR_MESSAGE, kind=FailureKind.INTERNAL_ERROR
                )

        outcome = result.method.value if result.success else result.kind.value
        record_extraction(fmt.value, outcome)
        return result

    def _extract(self, file: SourceFile, fmt: DocumentFormat) -> ExtractionSuccess:
        if not file.size_matches:
            raise ExtractionError(
                f"File size mismatch: declared {file.declared_size} bytes, received {len(file.content)}. "
                "The upload may have been truncated.",
                kind=FailureKind.SIZE_MISMATCH,
            )

        extractor = self.extractors.get(fmt)
        if extractor is None:
            raise ExtractionError(
                unsupported_message(file.mime_type), kind=FailureKind.UNSUPPORTED_FORMAT
            )

        verify_signature(fmt, file.content)

        logger.info(
            f"[Pipeline] Extracting {file.file_name or 'unnamed'}: format={fmt.value}, size={len(file.content)} bytes"
        )
        raw = extractor.extract(file.content)
        text = clean_text(raw.text)

        required = max(self.min_text_length, STRATEGY_MIN_LENGTH[raw.method])
        if len(text) < required:
            raise ExtractionError(
                "Extracted text is too short or empty. "
                "The file may be blank, corrupted, or contain only non-text content.",
                kind=FailureKind.TOO_SHORT,
            )

        logger.info(
            f"[Pipeline] Extraction succeeded via {raw.method.value}: "
            f"{len(text)} characters (raw {len(raw.text)})"
        )
        return ExtractionSuccess(
            text=text,
            method=raw.method,
            extracted_length=len(text),
            original_length=len(raw.text),
            truncated=raw.truncated,
            pages_processed=raw.pages_processed,
            page_count=raw.page_count,
        )


# Singleton instance
_pipeline: ExtractionPipeline | None = None


def get_pipeline() -> ExtractionPipeline:
    """Get or create the global ExtractionPipeline from settings."""
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        _pipeline = ExtractionPipeline(
            min_text_length=settings.min_text_length,
            pdf_max_pages=settings.pdf_max_pages,
        )
    return _pipeline


def extract(file: SourceFile) -> ExtractionResult:
    """Extract text from ``file`` with the configured pipeline."""
    return get_pipeline().extract(file)
