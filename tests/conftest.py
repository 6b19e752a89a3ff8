"""
Shared fixtures: generated PDFs, a plain renderer and isolated settings.
"""

import io

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from labcert.config import Settings, get_settings
from labcert.report.content import ContentModel, TextBlock
from labcert.report.render import ReportLabRenderer


def build_pdf(pages=1, label="CERTIFICATE"):
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    for index in range(pages):
        pdf.setFont("Helvetica", 14)
        pdf.drawString(72, 720, f"{label} PAGE {index + 1}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def page_texts(pdf_bytes):
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return [page.extract_text() or "" for page in reader.pages]


def long_primary(paragraphs=90):
    content = ContentModel()
    content.add(TextBlock("Monitoring Results", style="title"))
    for index in range(paragraphs):
        content.add(
            TextBlock(
                f"Paragraph {index + 1}. Static air monitoring was carried out adjacent to the "
                "work area for the duration of the shift and the filters were sent for analysis."
            )
        )
    return content


@pytest.fixture
def make_pdf():
    """Factory for small multi-page PDFs standing in for lab certificates."""
    return build_pdf


@pytest.fixture
def renderer():
    return ReportLabRenderer(title="Test Report")


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path)


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point the cached settings at a temporary data directory."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("CERTIFICATE_BASE_URL", raising=False)
    monkeypatch.delenv("LAB_API_BASE_URL", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def shift_payload():
    return {
        "shift": {
            "shift_id": "shift-0042",
            "date": "2025-03-14",
            "revision": 1,
            "sampler": "Jordan Lee",
            "description_of_works": "Removal of lead paint from the eastern stairwell.",
        },
        "project": {
            "project_id": "LD-2025-017",
            "name": "Civic Library",
            "address": "12 Example Street, Canberra ACT",
            "client_name": "Example Property Services",
            "contractor": "Abatement Co",
        },
        "samples": [
            {
                "sample_id": "LD-2025-017-LP2",
                "location": "Stairwell level 2",
                "start_time": "08:00",
                "end_time": "16:00",
                "average_flowrate": 2.0,
                "lead_content": "<0.5",
            },
            {
                "sample_id": "LD-2025-017-LP1",
                "location": "Stairwell level 1",
                "start_time": "08:00",
                "end_time": "16:00",
                "average_flowrate": "2.0",
                "lead_content": "12",
            },
            {
                "sample_id": "LD-2025-017-LP3",
                "location": "Site office",
                "start_time": "08:00",
                "end_time": "12:00",
                "average_flowrate": 2.0,
                "lead_content": "3",
                "status": "failed",
            },
        ],
    }
