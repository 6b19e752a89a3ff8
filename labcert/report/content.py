"""Caller-built document content, independent of page layout.

A :class:`ContentModel` is an ordered list of blocks. The renderer only
interprets the block kinds defined here; :class:`PageBreak` nodes may carry a
``section`` name, which marks where a named section (such as the appendix
cover) begins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Literal, Sequence, Union


TextStyle = Literal['title', 'heading', 'body', 'small', 'appendix_title', 'appendix_subtitle']
Alignment = Literal['left', 'center', 'right', 'justify']


@dataclass(frozen=True)
class TextBlock:
    # Inline markdown (**bold**, *italic*) is honoured.
    text: str
    style: TextStyle = 'body'
    align: Alignment | None = None


@dataclass(frozen=True)
class Cell:
    text: str
    bold: bool = False
    color: str | None = None


@dataclass(frozen=True)
class TableBlock:
    header: Sequence[str]
    rows: Sequence[Sequence[Union[str, Cell]]]
    col_widths_mm: Sequence[float] | None = None
    caption: str | None = None

    def __post_init__(self) -> None:
        width = len(self.header)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f'table row {index} has {len(row)} cells, header has {width}')
        if self.col_widths_mm is not None and len(self.col_widths_mm) != width:
            raise ValueError('col_widths_mm must match the number of header cells')


@dataclass(frozen=True)
class Spacer:
    height_mm: float = 4


@dataclass(frozen=True)
class ImageBlock:
    path: Path
    width_mm: float
    height_mm: float | None = None
    align: Alignment = 'left'


@dataclass(frozen=True)
class PageBreak:
    section: str | None = None


Block = Union[TextBlock, TableBlock, Spacer, ImageBlock, PageBreak]


@dataclass
class ContentModel:
    blocks: list[Block] = field(default_factory=list)

    def add(self, block: Block) -> 'ContentModel':
        self.blocks.append(block)
        return self

    def extend(self, blocks: Iterable[Block]) -> 'ContentModel':
        self.blocks.extend(blocks)
        return self

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def __add__(self, other: 'ContentModel') -> 'ContentModel':
        return ContentModel(blocks=[*self.blocks, *other.blocks])
