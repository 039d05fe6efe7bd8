"""Document text extraction for the non-PDF formats.

Supports: plain text / Markdown, RTF, DOCX. PDF lives in ``pdf.py``.
"""

import codecs
import logging
import re
from abc import ABC, abstractmethod
from io import BytesIO

from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph

from src.extraction.models import (
    DocumentFormat,
    ExtractionError,
    ExtractionStrategy,
    FailureKind,
    RawExtraction,
    STRATEGY_MIN_LENGTH,
)
from src.extraction.rtf import strip_rtf

logger = logging.getLogger(__name__)


class TextExtractor(ABC):
    """Base class for text extractors."""

    format: DocumentFormat

    @abstractmethod
    def extract(self, content: bytes) -> RawExtraction:
        """Extract raw text from document content."""
        pass


class PlainTextExtractor(TextExtractor):
    """Extract text from plain text and markdown files."""

    format = DocumentFormat.PLAIN_TEXT

    def extract(self, content: bytes) -> RawExtraction:
        """Decode bytes to text, replacing anything that is not valid."""
        if content.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            text = content.decode("utf-16", errors="replace")
        else:
            text = content.decode("utf-8-sig", errors="replace")
        return RawExtraction(text=text, method=ExtractionStrategy.PLAIN_TEXT)


class RtfExtractor(TextExtractor):
    """Extract text from RTF by stripping control markup."""

    format = DocumentFormat.RTF

    def extract(self, content: bytes) -> RawExtraction:
        try:
            source = content.decode("utf-8")
        except UnicodeDecodeError:
            # RTF is nominally 7-bit; 8-bit bytes are usually a Windows code page
            source = content.decode("cp1252", errors="replace")

        return RawExtraction(text=strip_rtf(source), method=ExtractionStrategy.RTF_PARSE)


class DocxExtractor(TextExtractor):
    """Extract text from Word documents using python-docx."""

    format = DocumentFormat.DOCX

    def extract(self, content: bytes) -> RawExtraction:
        """Extract paragraphs and table rows in document order."""
        try:
            doc = Document(BytesIO(content))

            text_parts = []
            for block in doc.iter_inner_content():
                if isinstance(block, Paragraph):
                    text_parts.append(block.text)
                elif isinstance(block, Table):
                    text_parts.extend(self._table_rows(block))
        except Exception as e:
            logger.warning(f"[DOCX] python-docx could not read document: {e}", exc_info=True)
            raise ExtractionError(
                "Could not read the Word document. The file may be corrupted or password-protected.",
                kind=FailureKind.LIBRARY_FAILURE,
            ) from e

        text = self.post_clean("\n".join(text_parts))
        if len(text) < STRATEGY_MIN_LENGTH[ExtractionStrategy.DOCX_LIBRARY]:
            raise ExtractionError(
                "No readable text found in the Word document. It may be empty or contain only images.",
                kind=FailureKind.TOO_SHORT,
            )

        return RawExtraction(text=text, method=ExtractionStrategy.DOCX_LIBRARY)

    @staticmethod
    def _table_rows(table: Table) -> list[str]:
        rows = []
        for row in table.rows:
            row_text = " | ".join(cell.text.strip() for cell in row.cells)
            if row_text.replace("|", "").strip():
                rows.append(row_text)
        return rows

    @staticmethod
    def post_clean(text: str) -> str:
        """Normalize line endings, trim lines, keep at most one blank line in a row."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        lines = [line.strip() for line in text.split("\n")]
        text = "\n".join(lines)
        return re.sub(r"\n{3,}", "\n\n", text).strip()
