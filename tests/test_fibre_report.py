"""
Tests for the fibre ID report.
"""

import logging

import pytest

from labcert.analysis.fibre_id import ANALYSIS_INCOMPLETE, CHRYSOTILE, NO_ASBESTOS_DETECTED
from labcert.errors import MissingAttachment
from labcert.report.content import Cell, TableBlock
from labcert.report.fibre_report import build_primary_content, generate_fibre_report, record_rows
from labcert.types import FibreReportInput

from conftest import page_texts


@pytest.fixture
def fibre_payload():
    return {
        "reference": "FA-2025-003",
        "client_name": "Example Property Services",
        "site_name": "Civic Library",
        "report_date": "2025-04-02",
        "analyst": "Sam Taylor",
        "samples": [
            {
                "sample_reference": "FA-2025-003-01",
                "sample_description": "Vinyl floor tile",
                "sample_mass": "2.4",
                "observations": [{"name": "Fibre A", "result": CHRYSOTILE}],
            },
            {
                "sample_reference": "FA-2025-003-02",
                "sample_description": "Fibre cement sheet",
                "sample_sizing": "dimensions",
                "sample_dimensions": {"x": "20", "y": "15"},
                "no_fibres_detected": True,
                "comments": "Sample was friable.",
            },
            {
                "sample_reference": "FA-2025-003-03",
                "sample_description": "Pipe lagging",
            },
        ],
    }


class TestRecordRows:
    """Tests for the results table rows."""

    def test_rows(self, fibre_payload):
        data = FibreReportInput.model_validate(fibre_payload)
        rows = record_rows(data.samples)
        assert rows[0] == ["FA-2025-003-01", "Vinyl floor tile", "2.4 g", CHRYSOTILE, Cell("Complete")]
        assert rows[1][2] == "20 x 15 mm"
        assert rows[1][3] == NO_ASBESTOS_DETECTED
        assert rows[2][2] == "-"
        assert rows[2][3] == ANALYSIS_INCOMPLETE
        assert rows[2][4] == Cell("Incomplete", bold=True, color="#DC2626")


class TestFibreReport:
    """Tests for building the fibre ID report."""

    def test_primary_content(self, fibre_payload, settings):
        content = build_primary_content(FibreReportInput.model_validate(fibre_payload), settings)
        tables = [block for block in content if isinstance(block, TableBlock)]
        assert len(tables[0].rows) == 3
        assert any("Sample was friable." in getattr(block, "text", "") for block in content)

    def test_generate(self, fibre_payload, settings, make_pdf, caplog):
        data = FibreReportInput.model_validate(fibre_payload)
        with caplog.at_level(logging.WARNING):
            report = generate_fibre_report(data, make_pdf(1), settings=settings)
        assert "FA-2025-003-03" in caplog.text
        assert report.filename == "Fibre ID Report - FA-2025-003 (20250402).pdf"
        assert report.page_count == report.main_page_count + 2
        texts = page_texts(report.pdf_bytes)
        assert "Report Reference: FA-2025-003" in texts[0]
        assert "CERTIFICATE PAGE 1" in texts[-1]

    def test_requires_certificate(self, fibre_payload, settings):
        with pytest.raises(MissingAttachment):
            generate_fibre_report(FibreReportInput.model_validate(fibre_payload), None, settings=settings)
