from src.extraction.diagnostics import diagnose_pdf, recommendations

from .builders import CONTRACT_SENTENCE, make_pdf


def test_diagnose_well_formed_pdf(contract_pdf):
    diagnostics = diagnose_pdf(contract_pdf, "spa.pdf")

    assert diagnostics.file_name == "spa.pdf"
    assert diagnostics.file_size == len(contract_pdf)
    assert diagnostics.is_pdf_valid
    assert diagnostics.pdf_version == "1.4"
    assert not diagnostics.is_encrypted
    assert diagnostics.page_count == 1
    assert diagnostics.font_count == 1
    assert diagnostics.text_operator_count == 1
    assert diagnostics.has_text_streams
    assert not diagnostics.has_images
    assert diagnostics.compression_methods == []
    assert diagnostics.structure.has_xref
    assert diagnostics.structure.has_trailer
    assert diagnostics.structure.has_startxref
    assert diagnostics.structure.object_count == 5
    assert diagnostics.structure.stream_count == 1
    assert CONTRACT_SENTENCE in diagnostics.sample_content


def test_well_formed_pdf_gets_no_warnings(contract_pdf):
    advice = recommendations(diagnose_pdf(contract_pdf))
    assert advice == ["PDF structure looks normal. Standard text extraction should work."]


def test_page_count_ignores_pages_tree():
    diagnostics = diagnose_pdf(make_pdf(["one", "two", "three"]))
    assert diagnostics.page_count == 3


def test_encrypted_pdf_is_flagged(encrypted_pdf):
    diagnostics = diagnose_pdf(encrypted_pdf)
    assert diagnostics.is_encrypted
    assert any("encrypted" in line for line in recommendations(diagnostics))


def test_not_a_pdf():
    diagnostics = diagnose_pdf(b"PK\x03\x04 definitely a zip")
    assert not diagnostics.is_pdf_valid
    advice = recommendations(diagnostics)
    assert len(advice) == 1
    assert "not a valid PDF" in advice[0]


def test_scanned_pdf_advice():
    scanned = (
        b"%PDF-1.5\n1 0 obj << /Type /Page >> endobj\n"
        b"2 0 obj << /Type /XObject /Subtype /Image /Filter /DCTDecode >> stream\n\xff\xd8\xff endstream endobj\n"
    )
    diagnostics = diagnose_pdf(scanned)

    assert diagnostics.has_images
    assert not diagnostics.has_text_streams
    assert "DCTDecode" in diagnostics.compression_methods[0]
    advice = recommendations(diagnostics)
    assert any("OCR" in line for line in advice)


def test_metadata_is_read_from_info_dictionary():
    content = b"%PDF-1.4\n1 0 obj << /Title (Share Purchase Agreement) /Producer (Acme PDF) >> endobj\n"
    diagnostics = diagnose_pdf(content)
    assert diagnostics.metadata == {"Title": "Share Purchase Agreement", "Producer": "Acme PDF"}


def test_to_dict_is_plain_data(contract_pdf):
    data = diagnose_pdf(contract_pdf).to_dict()
    assert data["is_pdf_valid"] is True
    assert data["structure"]["has_xref"] is True
