"""
Tests for appending the external lab certificate.
"""

import io

import pytest
from pypdf import PdfReader, PdfWriter

from labcert.errors import (
    ATTACH_CERTIFICATE_HINT,
    AttachmentError,
    CorruptAttachment,
    LayoutEngineFailure,
    MissingAttachment,
)
from labcert.report.merge import merge

from conftest import page_texts


def _encrypted(pdf_bytes):
    writer = PdfWriter(clone_from=PdfReader(io.BytesIO(pdf_bytes)))
    writer.encrypt(user_password="secret", owner_password="owner", algorithm="RC4-128")
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


class TestMerge:
    """Tests for merge."""

    def test_page_counts_add_up(self, make_pdf):
        merged = merge(make_pdf(3, "REPORT"), make_pdf(2, "CERTIFICATE"))
        texts = page_texts(merged)
        assert len(texts) == 5
        assert "REPORT PAGE 3" in texts[2]
        assert "CERTIFICATE PAGE 1" in texts[3]
        assert "CERTIFICATE PAGE 2" in texts[4]

    def test_certificate_pages_unchanged(self, make_pdf):
        certificate = make_pdf(2, "CERTIFICATE")
        merged = PdfReader(io.BytesIO(merge(make_pdf(1, "REPORT"), certificate)))
        original = PdfReader(io.BytesIO(certificate))
        for index, page in enumerate(original.pages):
            appended = merged.pages[1 + index]
            assert appended.get_contents().get_data() == page.get_contents().get_data()
            assert list(appended.mediabox) == list(page.mediabox)


class TestMergeFailures:
    """Tests for the distinguished failure kinds."""

    def test_missing(self, make_pdf):
        with pytest.raises(MissingAttachment) as excinfo:
            merge(make_pdf(1), None)
        assert str(excinfo.value) == ATTACH_CERTIFICATE_HINT

    def test_empty(self, make_pdf):
        with pytest.raises(MissingAttachment):
            merge(make_pdf(1), b"")

    def test_corrupt(self, make_pdf):
        with pytest.raises(CorruptAttachment) as excinfo:
            merge(make_pdf(1), b"this is not a pdf document")
        assert excinfo.value.reason
        assert "may be invalid" in str(excinfo.value)

    def test_password_protected(self, make_pdf):
        with pytest.raises(CorruptAttachment) as excinfo:
            merge(make_pdf(1), _encrypted(make_pdf(1)))
        assert "password" in excinfo.value.reason

    def test_kinds_are_distinct(self):
        assert not issubclass(CorruptAttachment, MissingAttachment)
        assert not issubclass(MissingAttachment, CorruptAttachment)
        assert issubclass(CorruptAttachment, AttachmentError)
        assert issubclass(MissingAttachment, AttachmentError)

    def test_unreadable_primary(self, make_pdf):
        with pytest.raises(LayoutEngineFailure):
            merge(b"garbage", make_pdf(1))
