from __future__ import annotations

import logging

from labcert.analysis.fibre_id import resolve_record
from labcert.config import Settings, get_settings
from labcert.report.assembly import GeneratedReport, ReportAssembly, generate_report
from labcert.report.content import Cell, ContentModel, Spacer, TableBlock, TextBlock
from labcert.report.paginate import FooterTemplate, Renderer
from labcert.report.render import ReportLabRenderer
from labcert.report.shift_report import build_appendix_cover
from labcert.types import FibreReportInput, SampleAnalysisRecord, SampleSizing


logger = logging.getLogger(__name__)

REPORT_TYPE = 'Fibre ID Report'

_RECORD_COLUMNS_MM = (26, 48, 30, 50, 28)


def _sizing_text(record: SampleAnalysisRecord) -> str:
    if record.sample_sizing == SampleSizing.mass:
        mass = record.sample_mass.strip()
        return f'{mass} g' if mass else '-'
    dims = record.sample_dimensions
    parts = [value.strip() for value in (dims.x, dims.y, dims.z) if value.strip()]
    return ' x '.join(parts) + ' mm' if parts else '-'


def _completeness_cell(record: SampleAnalysisRecord) -> Cell:
    if record.is_complete:
        return Cell('Complete')
    return Cell('Incomplete', bold=True, color='#DC2626')


def record_rows(records: list[SampleAnalysisRecord]) -> list[list[str | Cell]]:
    rows: list[list[str | Cell]] = []
    for record in records:
        resolved = resolve_record(record)
        rows.append(
            [
                resolved.sample_reference or '-',
                resolved.sample_description or '-',
                _sizing_text(resolved),
                resolved.final_result,
                _completeness_cell(resolved),
            ]
        )
    return rows


def build_primary_content(data: FibreReportInput, settings: Settings) -> ContentModel:
    content = ContentModel()
    site_name = data.site_name or 'N/A'
    report_date = data.report_date.strftime('%d %B %Y') if data.report_date else 'N/A'

    content.add(TextBlock(f'**Fibre Identification Results:** {site_name} - {report_date}', style='title'))
    content.add(TextBlock(f'**Client:** {data.client_name or "N/A"}', align='left'))
    content.add(TextBlock(f'**Analyst:** {data.analyst or "N/A"}', align='left'))
    content.add(Spacer(4))

    content.add(TextBlock('Methodology', style='heading'))
    content.add(
        TextBlock(
            'Samples were examined by stereo microscopy and fibres were identified by polarised '
            'light microscopy including dispersion staining.'
        )
    )

    content.add(
        TableBlock(
            header=('Sample ref.', 'Description', 'Sample size', 'Result', 'Status'),
            rows=record_rows(data.samples),
            col_widths_mm=_RECORD_COLUMNS_MM,
            caption='**Table 1:** Fibre Identification Results',
        )
    )

    commented = [record for record in data.samples if record.comments.strip()]
    if commented:
        content.add(TextBlock('Comments', style='heading'))
        for record in commented:
            content.add(TextBlock(f'**{record.sample_reference}:** {record.comments.strip()}'))

    content.add(TextBlock(f'For and on behalf of {settings.company_name}.'))
    return content


def build_fibre_assembly(
    data: FibreReportInput,
    certificate: bytes | None,
    *,
    settings: Settings | None = None,
) -> ReportAssembly:
    settings = settings or get_settings()
    return ReportAssembly(
        primary_content=build_primary_content(data, settings),
        appendix_cover_content=build_appendix_cover(),
        external_certificate=certificate,
        footer_template=FooterTemplate(reference=data.reference, revision=data.revision),
    )


def generate_fibre_report(
    data: FibreReportInput,
    certificate: bytes | None,
    *,
    settings: Settings | None = None,
    renderer: Renderer | None = None,
) -> GeneratedReport:
    settings = settings or get_settings()
    renderer = renderer or ReportLabRenderer.from_settings(settings, title=REPORT_TYPE)
    incomplete = [record.sample_reference for record in data.samples if not record.is_complete]
    if incomplete:
        logger.warning('Fibre ID report %s has incomplete samples: %s', data.reference, ', '.join(incomplete))
    assembly = build_fibre_assembly(data, certificate, settings=settings)
    return generate_report(assembly, renderer, report_type=REPORT_TYPE, report_date=data.report_date)
