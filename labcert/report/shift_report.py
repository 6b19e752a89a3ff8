from __future__ import annotations

import logging
import re
from datetime import date

from labcert.analysis.censored import format_censored
from labcert.analysis.concentration import ExposureAssessment, SampleMeasurement, assess_exposure
from labcert.config import Settings, get_settings
from labcert.report.assembly import GeneratedReport, ReportAssembly, generate_report
from labcert.report.content import Cell, ContentModel, PageBreak, Spacer, TableBlock, TextBlock
from labcert.report.paginate import APPENDIX_SECTION, FooterTemplate, Renderer
from labcert.report.render import ReportLabRenderer
from labcert.types import AirSample, ShiftReportInput


logger = logging.getLogger(__name__)

REPORT_TYPE = 'Lead Air Monitoring Report'

_SAMPLE_NUMBER = re.compile(r'LP(\d+)$')
_SAMPLE_COLUMNS_MM = (24, 52, 20, 20, 24, 42)


def _format_long_date(value: date | None) -> str:
    if value is None:
        return 'N/A'
    return value.strftime('%d %B %Y')


def _format_clock(value: str | None) -> str:
    text = str(value or '').strip()
    if not text:
        return '-'
    return ':'.join(text.split(':')[:2])


def _sample_number(sample: AirSample) -> int:
    match = _SAMPLE_NUMBER.search(sample.sample_id or '')
    return int(match.group(1)) if match else 0


def sorted_samples(samples: list[AirSample]) -> list[AirSample]:
    return sorted(samples, key=_sample_number)


def report_reference(data: ShiftReportInput) -> str:
    if data.project.project_id.strip():
        return data.project.project_id.strip()
    ordered = sorted_samples(data.samples)
    if ordered and ordered[0].sample_id:
        return ordered[0].sample_id[:8]
    return ''


def sample_rows(samples: list[AirSample], *, precision: int) -> list[list[str | Cell]]:
    rows: list[list[str | Cell]] = []
    for sample in samples:
        measurement = SampleMeasurement.from_air_sample(sample)
        if sample.failed:
            flowrate: str | Cell = Cell('Failed', bold=True, color='#DC2626')
        elif measurement.flow_rate is not None:
            flowrate = f'{measurement.flow_rate:g}'
        else:
            flowrate = '-'
        rows.append(
            [
                sample.sample_id or '-',
                sample.location or '-',
                _format_clock(sample.start_time),
                _format_clock(sample.end_time),
                flowrate,
                format_censored(measurement.concentration, precision),
            ]
        )
    return rows


def discussion_paragraphs(assessment: ExposureAssessment) -> list[str]:
    limit = f'{assessment.limit_mg_m3:g} mg/m³'
    if assessment.all_below_limit:
        return [
            'As the monitoring conducted was static and not exposure monitoring, direct comparison '
            f'against the exposure limit for airborne lead of {limit} is not appropriate.',
            'However, as all levels fell well below the exposure standard (and below the Practical '
            'Quantitation Limit), it can be concluded that the lead works did not pose a measurable '
            'lead exposure risk to building occupants.',
        ]
    if assessment.above_limit:
        plural = 's' if len(assessment.above_limit) > 1 else ''
        return [
            f'Analysis of {", ".join(assessment.above_limit)} found the sample{plural} exceeded the '
            f'exposure limit for airborne lead of {limit}.',
            'Work should immediately stop and a review conducted of the controls used for these lead '
            'abatement works.',
            'Work may only recommence once improvements to control measures have been implemented '
            'and assessed.',
        ]
    return ['[No lead concentration data available for conclusions.]']


def build_primary_content(data: ShiftReportInput, settings: Settings) -> ContentModel:
    samples = sorted_samples(data.samples)
    project = data.project
    shift = data.shift
    site_name = project.name or 'N/A'
    shift_date = _format_long_date(shift.date)
    client_name = project.client_name or 'N/A'
    site_address = project.address or 'N/A'
    contractor = project.contractor or 'N/A'
    company = settings.company_name
    short_name = settings.company_short_name

    content = ContentModel()
    content.add(TextBlock(f'**{client_name}**', align='left'))
    if project.contact_email:
        content.add(TextBlock(project.contact_email, align='left'))
    content.add(TextBlock(_format_long_date(date.today()), align='left'))
    content.add(Spacer(4))
    content.add(TextBlock(f'**Lead Air Monitoring Results:** {site_name} - {shift_date}', style='title'))

    content.add(TextBlock('Introduction', style='heading'))
    content.add(
        TextBlock(
            f'Following discussions with {client_name}, {company} ({short_name}) were contracted to '
            f'undertake air monitoring during lead abatement works at {site_address} (herein '
            "referred to as 'the Site')."
        )
    )
    content.add(
        TextBlock(
            f'Lead abatement works were undertaken by {contractor}. {shift.sampler} from {short_name} '
            f'visited the Site on {shift_date}.'
        )
    )
    if shift.description_of_works.strip():
        content.add(TextBlock(shift.description_of_works.strip()))
    content.add(
        TextBlock(
            'Table 1 below outlines the samples that formed part of the inspection. The certificate '
            'of analysis for the samples is presented in Appendix A of this report.'
        )
    )

    content.add(
        TableBlock(
            header=(
                'Sample ref.',
                'Sample location',
                'Start time',
                'Finish time',
                'Flowrate (L/min)',
                'Lead Concentration (mg/m³)',
            ),
            rows=sample_rows(samples, precision=settings.concentration_precision),
            col_widths_mm=_SAMPLE_COLUMNS_MM,
            caption='**Table 1:** Lead Air Monitoring Results',
        )
    )

    assessment = assess_exposure(samples, limit_mg_m3=settings.lead_exposure_limit_mg_m3)
    content.add(TextBlock('Discussion & Conclusions', style='heading'))
    for paragraph in discussion_paragraphs(assessment):
        content.add(TextBlock(paragraph))

    content.add(
        TextBlock(
            'Please do not hesitate to contact the undersigned should you have any queries regarding '
            'this report.'
        )
    )
    content.add(TextBlock(f'For and on behalf of {company}.'))
    content.add(Spacer(10))
    content.add(TextBlock(f'**{shift.sampler}**', align='left'))
    content.add(TextBlock(company, style='small', align='left'))
    return content


def build_appendix_cover(letter: str = 'A', title: str = 'CERTIFICATE OF ANALYSIS') -> ContentModel:
    return ContentModel(
        [
            PageBreak(section=APPENDIX_SECTION),
            Spacer(95),
            TextBlock(f'APPENDIX {letter}', style='appendix_title'),
            TextBlock(title, style='appendix_subtitle'),
        ]
    )


def build_shift_assembly(
    data: ShiftReportInput,
    certificate: bytes | None,
    *,
    settings: Settings | None = None,
) -> ReportAssembly:
    settings = settings or get_settings()
    return ReportAssembly(
        primary_content=build_primary_content(data, settings),
        appendix_cover_content=build_appendix_cover(),
        external_certificate=certificate,
        footer_template=FooterTemplate(reference=report_reference(data), revision=data.shift.revision),
    )


def generate_shift_report(
    data: ShiftReportInput,
    certificate: bytes | None,
    *,
    settings: Settings | None = None,
    renderer: Renderer | None = None,
) -> GeneratedReport:
    settings = settings or get_settings()
    renderer = renderer or ReportLabRenderer.from_settings(settings, title=REPORT_TYPE)
    assembly = build_shift_assembly(data, certificate, settings=settings)
    logger.info('Generating %s for shift %s', REPORT_TYPE, data.shift.shift_id)
    return generate_report(assembly, renderer, report_type=REPORT_TYPE, report_date=data.shift.date)
