from __future__ import annotations

import html
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from markdown_it import MarkdownIt
from pypdf import PdfReader
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import (
    Flowable,
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from labcert.config import Settings
from labcert.errors import LayoutEngineFailure
from labcert.report import content as cm


logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
PRODUCER = 'labcert'

_ALIGNMENTS = {
    'left': TA_LEFT,
    'center': TA_CENTER,
    'right': TA_RIGHT,
    'justify': TA_JUSTIFY,
}

_MARKDOWN_PARSER: MarkdownIt | None = None


@dataclass(frozen=True)
class Footer:
    left_lines: tuple[str, ...] = ()
    right_text: str | None = None


# Receives the 1-based page number being drawn.
FooterFn = Callable[[int], Optional[Footer]]


@dataclass(frozen=True)
class Letterhead:
    company_name: str
    address_lines: tuple[str, ...] = ()
    website: str | None = None
    logo_path: Path | None = None


@dataclass(frozen=True)
class PageLayout:
    font_name: str = 'Helvetica'
    font_path: Path | None = None
    body_font_size: float = 10
    margin_mm: float = 14
    header_height_mm: float = 37
    footer_height_mm: float = 20
    accent_color: str = '#16b12b'

    @property
    def content_width(self) -> float:
        return PAGE_WIDTH - 2 * self.margin_mm * mm


@dataclass
class RenderResult:
    pdf_bytes: bytes
    page_count: int
    # section name -> 1-based page on which it starts
    section_pages: dict[str, int] = field(default_factory=dict)


class _SectionAnchor(Flowable):
    """Zero-size flowable that records the page a section starts on."""

    def __init__(self, name: str, registry: dict[str, int]):
        Flowable.__init__(self)
        self.name = name
        self.registry = registry
        self.width = 0
        self.height = 0

    def wrap(self, availWidth, availHeight):
        return 0, 0

    def draw(self):
        self.registry.setdefault(self.name, self.canv.getPageNumber())


def _markdown_parser() -> MarkdownIt:
    global _MARKDOWN_PARSER
    if _MARKDOWN_PARSER is None:
        _MARKDOWN_PARSER = MarkdownIt('commonmark', {'html': False, 'typographer': False})
    return _MARKDOWN_PARSER


def _escape(value: Any) -> str:
    return html.escape(str(value or ''), quote=False)


def inline_markup(text: str) -> str:
    """Render inline markdown to ReportLab paragraph markup."""
    source = str(text or '').replace('\r\n', '\n').replace('\r', '\n')
    if not source.strip():
        return ''

    parts: list[str] = []
    for block in _markdown_parser().parseInline(source):
        for token in block.children or []:
            kind = token.type
            if kind == 'text':
                parts.append(_escape(token.content))
            elif kind in ('softbreak', 'hardbreak'):
                parts.append('<br/>')
            elif kind == 'strong_open':
                parts.append('<b>')
            elif kind == 'strong_close':
                parts.append('</b>')
            elif kind == 'em_open':
                parts.append('<i>')
            elif kind == 'em_close':
                parts.append('</i>')
            elif kind == 'code_inline':
                parts.append(f'<font name="Courier">{_escape(token.content)}</font>')
            elif token.content:
                parts.append(_escape(token.content))
    return ''.join(parts)


def _register_font(layout: PageLayout) -> None:
    if layout.font_path is None:
        try:
            pdfmetrics.getFont(layout.font_name)
        except Exception as exc:
            raise LayoutEngineFailure(
                f'Font {layout.font_name!r} is not registered and no font file was given'
            ) from exc
        return
    if layout.font_name in pdfmetrics.getRegisteredFontNames():
        return
    if not layout.font_path.is_file():
        raise LayoutEngineFailure(f'Font file not found: {layout.font_path}')
    try:
        pdfmetrics.registerFont(TTFont(layout.font_name, str(layout.font_path)))
    except Exception as exc:
        raise LayoutEngineFailure(f'Failed to load font {layout.font_name} from {layout.font_path}: {exc}') from exc
    # <b>/<i> markup needs a family; a single face stands in for all four.
    pdfmetrics.registerFontFamily(
        layout.font_name,
        normal=layout.font_name,
        bold=layout.font_name,
        italic=layout.font_name,
        boldItalic=layout.font_name,
    )
    logger.info('Registered report font %s from %s', layout.font_name, layout.font_path)


def _build_styles(layout: PageLayout) -> StyleSheet1:
    styles = getSampleStyleSheet()
    size = layout.body_font_size
    accent = colors.HexColor(layout.accent_color)

    styles.add(
        ParagraphStyle(
            name='CertBody',
            parent=styles['Normal'],
            fontName=layout.font_name,
            fontSize=size,
            leading=size * 1.4,
            alignment=TA_JUSTIFY,
            spaceAfter=6,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertTitle',
            parent=styles['CertBody'],
            fontSize=size + 2,
            leading=(size + 2) * 1.35,
            alignment=TA_LEFT,
            spaceAfter=8,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertHeading',
            parent=styles['CertBody'],
            fontSize=size + 1,
            leading=(size + 1) * 1.3,
            alignment=TA_LEFT,
            spaceBefore=4,
            spaceAfter=4,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertSmall',
            parent=styles['CertBody'],
            fontSize=size - 1,
            leading=(size - 1) * 1.3,
            spaceAfter=2,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertAppendixTitle',
            parent=styles['CertBody'],
            fontSize=18,
            leading=22,
            alignment=TA_CENTER,
            textColor=accent,
            spaceAfter=3 * mm,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertAppendixSubtitle',
            parent=styles['CertBody'],
            fontSize=18,
            leading=22,
            alignment=TA_CENTER,
            spaceAfter=8 * mm,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertTableHeader',
            parent=styles['CertBody'],
            fontSize=size - 1,
            leading=(size - 1) * 1.25,
            alignment=TA_LEFT,
            spaceAfter=0,
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertTableCell',
            parent=styles['CertTableHeader'],
        )
    )
    styles.add(
        ParagraphStyle(
            name='CertFooter',
            parent=styles['Normal'],
            fontName=layout.font_name,
            fontSize=8,
            leading=10,
        )
    )
    return styles


_STYLE_NAMES = {
    'title': 'CertTitle',
    'heading': 'CertHeading',
    'body': 'CertBody',
    'small': 'CertSmall',
    'appendix_title': 'CertAppendixTitle',
    'appendix_subtitle': 'CertAppendixSubtitle',
}


class ReportLabRenderer:
    """Layout engine: ``render(content, footer) -> RenderResult``.

    Output is built with ReportLab's invariant mode so identical input renders
    to identical bytes and, in particular, to the same page count.
    """

    def __init__(
        self,
        *,
        layout: PageLayout | None = None,
        letterhead: Letterhead | None = None,
        title: str = 'Report',
        author: str | None = None,
    ):
        self.layout = layout or PageLayout()
        self.letterhead = letterhead
        self.title = title
        self.author = author

    @classmethod
    def from_settings(cls, settings: Settings, *, title: str = 'Report') -> 'ReportLabRenderer':
        return cls(
            layout=PageLayout(
                font_name=settings.pdf_font_name,
                body_font_size=settings.pdf_body_font_size,
                margin_mm=settings.pdf_page_margin_mm,
                header_height_mm=settings.pdf_header_height_mm,
                footer_height_mm=settings.pdf_footer_height_mm,
            ),
            letterhead=Letterhead(
                company_name=settings.company_name,
                address_lines=tuple(settings.address_lines()),
                website=settings.company_website or None,
                logo_path=settings.company_logo_path,
            ),
            title=title,
            author=settings.company_name,
        )

    def render(self, content: cm.ContentModel, footer: FooterFn | None = None) -> RenderResult:
        _register_font(self.layout)
        if self.letterhead is not None and self.letterhead.logo_path is not None:
            if not Path(self.letterhead.logo_path).is_file():
                raise LayoutEngineFailure(f'Letterhead logo not found: {self.letterhead.logo_path}')

        styles = _build_styles(self.layout)
        section_pages: dict[str, int] = {}
        story = self._build_story(content, styles, section_pages)
        if not story:
            raise LayoutEngineFailure('Nothing to render: content model is empty')

        buffer = io.BytesIO()
        margin = self.layout.margin_mm * mm
        document = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=margin,
            rightMargin=margin,
            topMargin=self.layout.header_height_mm * mm,
            bottomMargin=self.layout.footer_height_mm * mm,
            title=self.title,
            author=self.author or '',
            invariant=1,
        )

        def _on_page(canvas, doc):
            canvas.setProducer(PRODUCER)
            self._draw_letterhead(canvas, doc)
            if footer is not None:
                self._draw_footer(canvas, doc, footer(canvas.getPageNumber()), styles)

        try:
            document.build(story, onFirstPage=_on_page, onLaterPages=_on_page)
        except LayoutEngineFailure:
            raise
        except Exception as exc:
            raise LayoutEngineFailure(f'Rendering failed: {type(exc).__name__}: {exc}') from exc

        pdf_bytes = buffer.getvalue()
        page_count = count_pages(pdf_bytes)
        return RenderResult(pdf_bytes=pdf_bytes, page_count=page_count, section_pages=section_pages)

    def _build_story(
        self,
        content: cm.ContentModel,
        styles: StyleSheet1,
        section_pages: dict[str, int],
    ) -> list:
        story: list = []
        for block in content:
            if isinstance(block, cm.TextBlock):
                style = styles[_STYLE_NAMES[block.style]]
                if block.align is not None:
                    style = ParagraphStyle(f'{style.name}-{block.align}', parent=style, alignment=_ALIGNMENTS[block.align])
                story.append(Paragraph(inline_markup(block.text), style))
            elif isinstance(block, cm.TableBlock):
                story.extend(self._table(block, styles))
            elif isinstance(block, cm.Spacer):
                story.append(Spacer(1, block.height_mm * mm))
            elif isinstance(block, cm.ImageBlock):
                story.append(self._image(block))
            elif isinstance(block, cm.PageBreak):
                story.append(PageBreak())
                if block.section:
                    story.append(_SectionAnchor(block.section, section_pages))
            else:
                raise LayoutEngineFailure(f'Unsupported content block: {type(block).__name__}')
        return story

    def _table(self, block: cm.TableBlock, styles: StyleSheet1) -> list:
        flowables: list = []
        if block.caption:
            flowables.append(Paragraph(inline_markup(block.caption), styles['CertBody']))

        header_style = styles['CertTableHeader']
        cell_style = styles['CertTableCell']
        data = [[Paragraph(f'<b>{inline_markup(text)}</b>', header_style) for text in block.header]]
        for row in block.rows:
            data.append([Paragraph(self._cell_markup(cell), cell_style) for cell in row])

        if block.col_widths_mm is not None:
            col_widths = [width * mm for width in block.col_widths_mm]
        else:
            col_widths = [self.layout.content_width / len(block.header)] * len(block.header)

        table = Table(data, colWidths=col_widths, repeatRows=1, hAlign='LEFT')
        table.setStyle(
            TableStyle(
                [
                    ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#9CA3AF')),
                    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#F0F0F0')),
                    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
                    ('LEFTPADDING', (0, 0), (-1, -1), 4),
                    ('RIGHTPADDING', (0, 0), (-1, -1), 4),
                    ('TOPPADDING', (0, 0), (-1, -1), 3),
                    ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
                ]
            )
        )
        flowables.append(table)
        flowables.append(Spacer(1, 4 * mm))
        return flowables

    @staticmethod
    def _cell_markup(cell: str | cm.Cell) -> str:
        if not isinstance(cell, cm.Cell):
            return inline_markup(cell)
        markup = inline_markup(cell.text)
        if cell.bold:
            markup = f'<b>{markup}</b>'
        if cell.color:
            markup = f'<font color="{html.escape(cell.color, quote=True)}">{markup}</font>'
        return markup

    @staticmethod
    def _image(block: cm.ImageBlock) -> Image:
        path = Path(block.path)
        if not path.is_file():
            raise LayoutEngineFailure(f'Image asset not found: {path}')
        width = block.width_mm * mm
        if block.height_mm is not None:
            image = Image(str(path), width=width, height=block.height_mm * mm)
        else:
            image = Image(str(path), width=width, height=width, kind='proportional')
        image.hAlign = block.align.upper() if block.align != 'justify' else 'LEFT'
        return image

    def _draw_letterhead(self, canvas, doc) -> None:
        if self.letterhead is None:
            return
        canvas.saveState()
        accent = colors.HexColor(self.layout.accent_color)
        left_x = doc.leftMargin
        right_x = PAGE_WIDTH - doc.rightMargin
        top_y = PAGE_HEIGHT - 12 * mm

        if self.letterhead.logo_path is not None:
            canvas.drawImage(
                str(self.letterhead.logo_path),
                left_x,
                top_y - 16 * mm,
                width=58 * mm,
                height=16 * mm,
                preserveAspectRatio=True,
                anchor='sw',
                mask='auto',
            )

        lines = [self.letterhead.company_name, *self.letterhead.address_lines]
        if self.letterhead.website:
            lines.append(f'W: {self.letterhead.website}')
        canvas.setFillColor(colors.black)
        canvas.setFont(self.layout.font_name, 9)
        cursor_y = top_y - 3 * mm
        for line in lines:
            canvas.drawRightString(right_x, cursor_y, line)
            cursor_y -= 4.6 * mm

        rule_y = PAGE_HEIGHT - (self.layout.header_height_mm - 6) * mm
        canvas.setStrokeColor(accent)
        canvas.setLineWidth(1.5)
        canvas.line(left_x, rule_y, right_x, rule_y)
        canvas.restoreState()

    def _draw_footer(self, canvas, doc, footer: Footer | None, styles: StyleSheet1) -> None:
        if footer is None:
            return
        canvas.saveState()
        left_x = doc.leftMargin
        right_x = PAGE_WIDTH - doc.rightMargin
        rule_y = (self.layout.footer_height_mm - 6) * mm

        canvas.setStrokeColor(colors.HexColor(self.layout.accent_color))
        canvas.setLineWidth(1.5)
        canvas.line(left_x, rule_y, right_x, rule_y)

        canvas.setFillColor(colors.black)
        canvas.setFont(self.layout.font_name, 8)
        text_y = rule_y - 4 * mm
        for line in footer.left_lines:
            canvas.drawString(left_x, text_y, line)
            text_y -= 3.6 * mm
        if footer.right_text:
            canvas.drawRightString(right_x, rule_y - 4 * mm, footer.right_text)
        canvas.restoreState()


def count_pages(pdf_bytes: bytes) -> int:
    try:
        return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
    except Exception as exc:
        raise LayoutEngineFailure(f'Rendered document could not be read back: {exc}') from exc
