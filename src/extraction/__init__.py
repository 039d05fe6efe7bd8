"""Document text extraction package.

Components:
- Sniffer: MIME type dispatch and magic-byte verification
- Extractors: plain text, RTF, DOCX
- PdfCascade: structured -> content-stream -> raw-scan PDF fallbacks
- Cleaning: shared post-extraction normalizer
- Pipeline: the ``extract`` entry point
- Diagnostics: raw structural report for problem PDFs
"""

from src.extraction.cleaning import clean_text
from src.extraction.diagnostics import PdfDiagnostics, diagnose_pdf, recommendations
from src.extraction.models import (
    DocumentFormat,
    ExtractionError,
    ExtractionFailure,
    ExtractionResult,
    ExtractionStrategy,
    ExtractionSuccess,
    FailureKind,
    SourceFile,
)
from src.extraction.pdf import PdfCascade
from src.extraction.pipeline import ExtractionPipeline, extract, get_pipeline

__all__ = [
    "DocumentFormat",
    "ExtractionError",
    "ExtractionFailure",
    "ExtractionPipeline",
    "ExtractionResult",
    "ExtractionStrategy",
    "ExtractionSuccess",
    "FailureKind",
    "PdfCascade",
    "PdfDiagnostics",
    "SourceFile",
    "clean_text",
    "diagnose_pdf",
    "extract",
    "get_pipeline",
    "recommendations",
]
