from __future__ import annotations

import io
import logging

from pypdf import PdfReader, PdfWriter

from labcert.errors import AttachmentError, CorruptAttachment, LayoutEngineFailure, MissingAttachment


logger = logging.getLogger(__name__)


def _read_external(external_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(external_bytes))
        if reader.is_encrypted and not reader.decrypt(''):
            raise CorruptAttachment('The certificate PDF is password protected.')
        if len(reader.pages) == 0:
            raise CorruptAttachment('The certificate PDF has no pages.')
    except AttachmentError:
        raise
    except Exception as exc:
        raise CorruptAttachment(f'{type(exc).__name__}: {exc}') from exc
    return reader


def merge(primary_bytes: bytes, external_bytes: bytes | None) -> bytes:
    """Append every page of the external certificate after the report pages.

    Pages are copied as-is; nothing in the external document is re-rendered.
    Raises instead of returning the report without its certificate.
    """
    if external_bytes is None or len(external_bytes) == 0:
        raise MissingAttachment()

    external = _read_external(external_bytes)

    try:
        primary = PdfReader(io.BytesIO(primary_bytes))
        primary_pages = list(primary.pages)
    except Exception as exc:
        raise LayoutEngineFailure(f'Rendered report could not be re-read for merging: {exc}') from exc

    writer = PdfWriter()
    for page in primary_pages:
        writer.add_page(page)

    try:
        for page in external.pages:
            writer.add_page(page)
        output = io.BytesIO()
        writer.write(output)
    except Exception as exc:
        raise CorruptAttachment(f'{type(exc).__name__}: {exc}') from exc

    logger.info(
        'Merged %s report page(s) with %s certificate page(s)',
        len(primary_pages),
        len(external.pages),
    )
    return output.getvalue()
