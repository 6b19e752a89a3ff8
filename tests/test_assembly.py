"""
Tests for end-to-end report assembly.
"""

from datetime import date

import pytest

from labcert.errors import CorruptAttachment, MissingAttachment
from labcert.report.assembly import ReportAssembly, assemble, generate_report, suggest_filename
from labcert.report.paginate import FooterTemplate
from labcert.report.shift_report import build_appendix_cover

from conftest import long_primary, page_texts


class RecordingRenderer:
    def __init__(self):
        self.calls = 0

    def render(self, content, footer=None):
        self.calls += 1
        raise AssertionError("renderer must not be called")


def _assembly(certificate, paragraphs=60):
    return ReportAssembly(
        primary_content=long_primary(paragraphs),
        appendix_cover_content=build_appendix_cover(),
        external_certificate=certificate,
        footer_template=FooterTemplate(reference="LD-2025-017", revision=0),
    )


class TestAssemble:
    """Tests for assemble."""

    def test_full_document(self, renderer, make_pdf):
        k = renderer.render(long_primary(60)).page_count
        pdf_bytes, main_page_count, page_count = assemble(_assembly(make_pdf(2)), renderer)
        assert main_page_count == k
        assert page_count == k + 1 + 2

        texts = page_texts(pdf_bytes)
        assert len(texts) == page_count
        assert f"Page {k} of {k}" in texts[k - 1]
        for text in texts[k:]:
            assert f"of {k}" not in text
        assert "CERTIFICATE OF ANALYSIS" in texts[k]
        assert "CERTIFICATE PAGE 1" in texts[k + 1]
        assert "CERTIFICATE PAGE 2" in texts[k + 2]

    @pytest.mark.parametrize("certificate", [None, b""])
    def test_missing_certificate_fails_before_rendering(self, certificate):
        renderer = RecordingRenderer()
        with pytest.raises(MissingAttachment):
            assemble(_assembly(certificate), renderer)
        assert renderer.calls == 0

    def test_corrupt_certificate(self, renderer):
        with pytest.raises(CorruptAttachment):
            assemble(_assembly(b"%PDF-1.4 truncated"), renderer)


class TestGenerateReport:
    """Tests for generate_report."""

    def test_result_fields(self, renderer, make_pdf):
        report = generate_report(
            _assembly(make_pdf(1), paragraphs=5),
            renderer,
            report_type="Lead Air Monitoring Report",
            report_date=date(2025, 3, 14),
        )
        assert report.filename == "Lead Air Monitoring Report - LD-2025-017 (20250314).pdf"
        assert report.main_page_count == 1
        assert report.page_count == 3
        assert report.pdf_bytes.startswith(b"%PDF-")


class TestSuggestFilename:
    """Tests for suggest_filename."""

    def test_without_date(self):
        assert suggest_filename("Fibre ID Report", "FA-12") == "Fibre ID Report - FA-12.pdf"

    def test_strips_unsafe_characters(self):
        assert suggest_filename("Fibre ID Report", 'FA/12:"x"') == "Fibre ID Report - FA12x.pdf"

    def test_blank_reference(self):
        assert suggest_filename("Report", "  ") == "Report - report.pdf"
