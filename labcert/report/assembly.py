from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime

from labcert.errors import MissingAttachment
from labcert.report.content import ContentModel
from labcert.report.merge import merge
from labcert.report.paginate import FooterTemplate, Renderer, paginate
from labcert.report.render import count_pages


logger = logging.getLogger(__name__)

_FILENAME_UNSAFE = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


@dataclass(frozen=True)
class ReportAssembly:
    primary_content: ContentModel
    appendix_cover_content: ContentModel
    external_certificate: bytes | None
    footer_template: FooterTemplate


@dataclass(frozen=True)
class GeneratedReport:
    pdf_bytes: bytes
    filename: str
    main_page_count: int
    page_count: int


def assemble(assembly: ReportAssembly, renderer: Renderer) -> tuple[bytes, int, int]:
    """Render, paginate and merge; returns ``(pdf_bytes, main_page_count, page_count)``.

    Nothing is returned unless every step succeeds.
    """
    if not assembly.external_certificate:
        raise MissingAttachment()

    paginated = paginate(
        renderer,
        assembly.primary_content,
        assembly.appendix_cover_content,
        assembly.footer_template,
    )
    merged = merge(paginated.pdf_bytes, assembly.external_certificate)
    certificate_pages = count_pages(merged) - paginated.page_count
    logger.info(
        'Assembled report %s: %s primary page(s), %s appendix page(s), %s certificate page(s)',
        assembly.footer_template.reference,
        paginated.main_page_count,
        paginated.page_count - paginated.main_page_count,
        certificate_pages,
    )
    return merged, paginated.main_page_count, paginated.page_count + certificate_pages


def suggest_filename(report_type: str, reference: str | None, report_date: date | datetime | None = None) -> str:
    """``{ReportType} - {Reference}[ (YYYYMMDD)].pdf``"""
    clean_type = _FILENAME_UNSAFE.sub('', str(report_type or '')).strip() or 'Report'
    clean_reference = _FILENAME_UNSAFE.sub('', str(reference or '')).strip() or 'report'
    stem = f'{clean_type} - {clean_reference}'
    if report_date is not None:
        stem += f' ({report_date.strftime("%Y%m%d")})'
    return stem + '.pdf'


def generate_report(
    assembly: ReportAssembly,
    renderer: Renderer,
    *,
    report_type: str,
    report_date: date | datetime | None = None,
) -> GeneratedReport:
    pdf_bytes, main_page_count, page_count = assemble(assembly, renderer)
    return GeneratedReport(
        pdf_bytes=pdf_bytes,
        filename=suggest_filename(report_type, assembly.footer_template.reference, report_date),
        main_page_count=main_page_count,
        page_count=page_count,
    )
