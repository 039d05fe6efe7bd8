"""Structural diagnostics for PDFs that fail extraction.

Pure byte inspection, no parsing library: the files that need diagnosing are
usually the ones pypdf cannot open.
"""

import re
from dataclasses import asdict, dataclass, field

_VERSION = re.compile(rb"%PDF-(\d+\.\d+)")
_PAGE = re.compile(rb"/Type\s*/Page\b")
_FONT = re.compile(rb"/Type\s*/Font\b")
_OBJECT = re.compile(rb"\d+\s+\d+\s+obj\b")
_STREAM = re.compile(rb"\bstream\b")
_TEXT_OPERATOR = re.compile(rb"\b(?:Tj|TJ)\b")
_IMAGE = re.compile(rb"/Subtype\s*/Image\b")
_NON_PRINTABLE = re.compile(rb"[^\x20-\x7E\n\r\t]")
_WHITESPACE = re.compile(rb"\s+")

COMPRESSION_FILTERS = {
    b"/FlateDecode": "FlateDecode",
    b"/ASCIIHexDecode": "ASCIIHexDecode",
    b"/ASCII85Decode": "ASCII85Decode",
    b"/LZWDecode": "LZWDecode",
    b"/RunLengthDecode": "RunLengthDecode",
    b"/CCITTFaxDecode": "CCITTFaxDecode",
    b"/JBIG2Decode": "JBIG2Decode",
    b"/DCTDecode": "DCTDecode (JPEG)",
    b"/JPXDecode": "JPXDecode (JPEG2000)",
}

METADATA_KEYS = ("Title", "Author", "Subject", "Creator", "Producer", "CreationDate", "ModDate")

SAMPLE_LENGTH = 500


@dataclass
class StructureAnalysis:
    has_xref: bool = False
    has_trailer: bool = False
    has_startxref: bool = False
    object_count: int = 0
    stream_count: int = 0


@dataclass
class PdfDiagnostics:
    """What the raw bytes reveal about a PDF."""

    file_name: str | None
    file_size: int
    is_pdf_valid: bool = False
    pdf_version: str = ""
    is_encrypted: bool = False
    page_count: int = 0
    font_count: int = 0
    image_count: int = 0
    text_operator_count: int = 0
    has_text_streams: bool = False
    has_images: bool = False
    compression_methods: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    sample_content: str = ""
    structure: StructureAnalysis = field(default_factory=StructureAnalysis)

    def to_dict(self) -> dict:
        return asdict(self)


def diagnose_pdf(content: bytes, file_name: str | None = None) -> PdfDiagnostics:
    """Inspect the raw structure of a (possibly broken) PDF."""
    diagnostics = PdfDiagnostics(file_name=file_name, file_size=len(content))

    version = _VERSION.match(content)
    if version:
        diagnostics.is_pdf_valid = True
        diagnostics.pdf_version = version.group(1).decode("ascii")

    diagnostics.is_encrypted = b"/Encrypt" in content
    diagnostics.page_count = len(_PAGE.findall(content))
    diagnostics.font_count = len(_FONT.findall(content))
    diagnostics.image_count = len(_IMAGE.findall(content))
    diagnostics.has_images = diagnostics.image_count > 0 or b"/DCTDecode" in content
    diagnostics.text_operator_count = len(_TEXT_OPERATOR.findall(content))
    diagnostics.has_text_streams = diagnostics.text_operator_count > 0 or diagnostics.font_count > 0
    diagnostics.compression_methods = [
        label for marker, label in COMPRESSION_FILTERS.items() if marker in content
    ]

    for key in METADATA_KEYS:
        match = re.search(rb"/" + key.encode() + rb"\s*\(([^)]*)\)", content)
        if match:
            diagnostics.metadata[key] = match.group(1).decode("latin-1")

    diagnostics.structure = StructureAnalysis(
        has_xref=b"xref" in content,
        has_trailer=b"trailer" in content,
        has_startxref=b"startxref" in content,
        object_count=len(_OBJECT.findall(content)),
        stream_count=len(_STREAM.findall(content)),
    )

    readable = _WHITESPACE.sub(b" ", _NON_PRINTABLE.sub(b" ", content)).strip()
    diagnostics.sample_content = readable[:SAMPLE_LENGTH].decode("ascii")

    return diagnostics


def recommendations(diagnostics: PdfDiagnostics) -> list[str]:
    """Plain-language next steps for a diagnosed PDF."""
    if not diagnostics.is_pdf_valid:
        return ["File is not a valid PDF (missing %PDF header). Check the file format."]

    advice = []
    if diagnostics.is_encrypted:
        advice.append("PDF is encrypted or password protected. Remove the protection before uploading.")

    if diagnostics.page_count == 0:
        advice.append("No page objects detected. The PDF structure may be corrupted.")

    if not diagnostics.has_text_streams:
        advice.append("No text content detected. This is likely a scanned PDF and needs OCR.")
        if diagnostics.has_images:
            advice.append("PDF contains only images. Run it through OCR before uploading.")

    if diagnostics.font_count == 0 and diagnostics.text_operator_count > 0:
        advice.append("Text operators present but no fonts declared. Unusual structure; extraction may be partial.")

    if diagnostics.structure.stream_count > 10 and diagnostics.text_operator_count == 0:
        if diagnostics.compression_methods:
            advice.append(
                "Streams are compressed ("
                + ", ".join(diagnostics.compression_methods)
                + "); text may only be readable after decompression."
            )
        else:
            advice.append("Many streams but no text operators. Likely graphics or images only.")

    if not advice:
        advice.append("PDF structure looks normal. Standard text extraction should work.")

    return advice
