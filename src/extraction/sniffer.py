"""Format detection from declared MIME type and magic bytes."""

from src.extraction.models import DocumentFormat, ExtractionError, FailureKind

PDF_MAGIC = b"%PDF"
ZIP_MAGIC = b"PK"

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_WORD_MIME = "application/msword"

MIME_FORMATS: dict[str, DocumentFormat] = {
    "text/plain": DocumentFormat.PLAIN_TEXT,
    "text/markdown": DocumentFormat.PLAIN_TEXT,
    "text/x-markdown": DocumentFormat.PLAIN_TEXT,
    "application/rtf": DocumentFormat.RTF,
    "text/rtf": DocumentFormat.RTF,
    DOCX_MIME: DocumentFormat.DOCX,
    "application/pdf": DocumentFormat.PDF,
}

SUPPORTED_FORMATS_LABEL = "PDF, Word (.docx), RTF, or plain text"

# Formats whose content must start with a known signature.
_SIGNATURES: dict[DocumentFormat, tuple[bytes, str]] = {
    DocumentFormat.PDF: (PDF_MAGIC, "PDF"),
    DocumentFormat.DOCX: (ZIP_MAGIC, "ZIP/DOCX"),
}


def normalize_mime_type(mime_type: str | None) -> str:
    """Lowercase and drop parameters: ``Text/Plain; charset=utf-8`` -> ``text/plain``."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def sniff_format(mime_type: str | None) -> DocumentFormat:
    """Pick the extraction family for a declared MIME type.

    Magic bytes are checked afterwards by :func:`verify_signature`.
    """
    return MIME_FORMATS.get(normalize_mime_type(mime_type), DocumentFormat.UNSUPPORTED)


def unsupported_message(mime_type: str | None) -> str:
    """User-facing reason for an unsupported declared type."""
    normalized = normalize_mime_type(mime_type) or "unknown"
    if normalized == LEGACY_WORD_MIME:
        return (
            "Legacy Word (.doc) files are not supported. "
            f"Please re-save the document as .docx or PDF, or upload a {SUPPORTED_FORMATS_LABEL} file."
        )
    return f"File type {normalized} is not supported. Please upload a {SUPPORTED_FORMATS_LABEL} file."


def verify_signature(fmt: DocumentFormat, content: bytes) -> None:
    """Raise unless ``content`` starts with the magic bytes ``fmt`` requires."""
    expected = _SIGNATURES.get(fmt)
    if expected is None:
        return

    magic, label = expected
    if not content.startswith(magic):
        raise ExtractionError(
            f"File does not match declared type {fmt.value} (missing {label} header)",
            kind=FailureKind.SIGNATURE_MISMATCH,
        )
