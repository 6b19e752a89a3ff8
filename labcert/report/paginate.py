"""Two-pass pagination for reports whose footer states "Page X of N".

N is the page count of the primary section only. It is measured by rendering
the primary section alone (pass 1) and then handed explicitly to the footer
of the full render (pass 2). The appendix cover and any merged certificate
pages carry no counter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from labcert.errors import LayoutEngineFailure, PaginationMismatch
from labcert.report.content import ContentModel, PageBreak
from labcert.report.render import Footer, FooterFn, RenderResult


logger = logging.getLogger(__name__)

APPENDIX_SECTION = 'appendix'


class Renderer(Protocol):
    def render(self, content: ContentModel, footer: FooterFn | None = None) -> RenderResult: ...


@dataclass(frozen=True)
class FooterTemplate:
    reference: str
    revision: int = 0

    def footer_for(self, page: int, main_page_count: int | None) -> Footer:
        left_lines = (
            f'Report Reference: {self.reference}',
            f'Revision: {self.revision}',
        )
        if main_page_count is not None and page <= main_page_count:
            return Footer(left_lines=left_lines, right_text=f'Page {page} of {main_page_count}')
        return Footer(left_lines=left_lines)

    def footer_fn(self, main_page_count: int | None) -> FooterFn:
        def _footer(page: int) -> Footer:
            return self.footer_for(page, main_page_count)

        return _footer


@dataclass(frozen=True)
class PaginatedDocument:
    pdf_bytes: bytes
    main_page_count: int
    page_count: int


def measure_primary(renderer: Renderer, primary: ContentModel, footer_template: FooterTemplate) -> int:
    """Pass 1: render the primary section alone and count its pages."""
    result = renderer.render(primary, footer_template.footer_fn(None))
    if result.page_count <= 0:
        raise LayoutEngineFailure('Primary section rendered to no pages')
    return result.page_count


def _without_trailing_breaks(primary: ContentModel) -> ContentModel:
    # A closing break would otherwise add a blank page in pass 1 only.
    blocks = list(primary.blocks)
    while blocks and isinstance(blocks[-1], PageBreak):
        blocks.pop()
    return ContentModel(blocks)


def _with_appendix_marker(appendix_cover: ContentModel) -> ContentModel:
    if not len(appendix_cover):
        return appendix_cover
    first = appendix_cover.blocks[0]
    if isinstance(first, PageBreak) and first.section == APPENDIX_SECTION:
        return appendix_cover
    if isinstance(first, PageBreak):
        return ContentModel([PageBreak(section=APPENDIX_SECTION), *appendix_cover.blocks[1:]])
    return ContentModel([PageBreak(section=APPENDIX_SECTION), *appendix_cover.blocks])


def paginate(
    renderer: Renderer,
    primary: ContentModel,
    appendix_cover: ContentModel,
    footer_template: FooterTemplate,
) -> PaginatedDocument:
    primary = _without_trailing_breaks(primary)
    main_page_count = measure_primary(renderer, primary, footer_template)
    logger.info('Primary section measured at %s page(s)', main_page_count)

    appendix = _with_appendix_marker(appendix_cover)
    result = renderer.render(primary + appendix, footer_template.footer_fn(main_page_count))

    # Pass 2 must lay the primary section out exactly as pass 1 did.
    if len(appendix):
        appendix_start = result.section_pages.get(APPENDIX_SECTION)
        if appendix_start is None:
            raise LayoutEngineFailure('Appendix cover was not placed in the rendered document')
        rendered_main = appendix_start - 1
    else:
        rendered_main = result.page_count
    if rendered_main != main_page_count:
        logger.warning(
            'Pagination drift: pass 1 measured %s page(s), pass 2 placed %s',
            main_page_count,
            rendered_main,
        )
        raise PaginationMismatch(expected=main_page_count, actual=rendered_main)

    return PaginatedDocument(
        pdf_bytes=result.pdf_bytes,
        main_page_count=main_page_count,
        page_count=result.page_count,
    )
