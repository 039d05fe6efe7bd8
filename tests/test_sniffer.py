import pytest

from src.extraction.models import DocumentFormat, ExtractionError, FailureKind
from src.extraction.sniffer import (
    DOCX_MIME,
    normalize_mime_type,
    sniff_format,
    unsupported_message,
    verify_signature,
)


@pytest.mark.parametrize(
    "mime, expected",
    [
        ("text/plain", DocumentFormat.PLAIN_TEXT),
        ("text/markdown", DocumentFormat.PLAIN_TEXT),
        ("application/rtf", DocumentFormat.RTF),
        ("text/rtf", DocumentFormat.RTF),
        (DOCX_MIME, DocumentFormat.DOCX),
        ("application/pdf", DocumentFormat.PDF),
        ("Application/PDF", DocumentFormat.PDF),
        ("text/plain; charset=utf-8", DocumentFormat.PLAIN_TEXT),
        ("application/msword", DocumentFormat.UNSUPPORTED),
        ("image/png", DocumentFormat.UNSUPPORTED),
        ("text/html", DocumentFormat.UNSUPPORTED),
        ("", DocumentFormat.UNSUPPORTED),
        (None, DocumentFormat.UNSUPPORTED),
    ],
)
def test_sniff_format(mime, expected):
    assert sniff_format(mime) is expected


def test_normalize_mime_type():
    assert normalize_mime_type("  Text/Markdown ; charset=UTF-8") == "text/markdown"


def test_unsupported_message_for_legacy_word():
    message = unsupported_message("application/msword")
    assert "not supported" in message
    assert ".docx" in message


def test_unsupported_message_names_the_type():
    assert "image/png is not supported" in unsupported_message("image/png")


# ---------------------------------------------------------------------------
# Magic bytes
# ---------------------------------------------------------------------------


def test_pdf_signature_accepted():
    verify_signature(DocumentFormat.PDF, b"%PDF-1.4\n...")


def test_pdf_signature_mismatch():
    with pytest.raises(ExtractionError) as exc_info:
        verify_signature(DocumentFormat.PDF, b"not a pdf")
    assert exc_info.value.kind is FailureKind.SIGNATURE_MISMATCH
    assert "header" in str(exc_info.value)


def test_docx_signature_mismatch():
    with pytest.raises(ExtractionError) as exc_info:
        verify_signature(DocumentFormat.DOCX, b"%PDF-1.4")
    assert exc_info.value.kind is FailureKind.SIGNATURE_MISMATCH
    assert "ZIP" in str(exc_info.value)


@pytest.mark.parametrize("fmt", [DocumentFormat.PLAIN_TEXT, DocumentFormat.RTF])
def test_text_formats_have_no_signature(fmt):
    verify_signature(fmt, b"\x00\x01 anything")
