"""Left-censored measured quantities ("less than X" results).

Lab certificates report results below the practical quantitation limit as
``<X``. A :class:`CensoredQuantity` keeps the magnitude and the censoring flag
together so the flag survives every derived value; anything that cannot be
read as a non-negative finite number becomes an :class:`InvalidQuantity`
instead of raising.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

from labcert.errors import InvalidMeasurement


CENSORED_PREFIX = '<'
DEFAULT_PRECISION = 4


@dataclass(frozen=True)
class CensoredQuantity:
    magnitude: float
    censored: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.magnitude, bool) or not isinstance(self.magnitude, (int, float)):
            raise InvalidMeasurement(f'magnitude must be a number, got {self.magnitude!r}')
        if not math.isfinite(self.magnitude):
            raise InvalidMeasurement(f'magnitude must be finite, got {self.magnitude!r}')
        if self.magnitude < 0:
            raise InvalidMeasurement(f'magnitude must be >= 0, got {self.magnitude!r}')
        # -0.0 would format as "-0.0000"
        object.__setattr__(self, 'magnitude', float(self.magnitude) + 0.0)

    def format(self, precision: int = DEFAULT_PRECISION) -> str:
        formatted = f'{self.magnitude:.{precision}f}'
        if self.censored:
            return CENSORED_PREFIX + formatted
        return formatted

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class InvalidQuantity:
    raw: str
    reason: str

    def format(self, precision: int = DEFAULT_PRECISION) -> str:
        return '-'

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.format()


Quantity = Union[CensoredQuantity, InvalidQuantity]


def parse_censored(raw: Any) -> Quantity:
    """Parse ``"12.5"`` or ``"<0.05"`` (whitespace after ``<`` allowed)."""
    if isinstance(raw, CensoredQuantity):
        return raw
    text = '' if raw is None else str(raw).strip()
    censored = text.startswith(CENSORED_PREFIX)
    number_text = text[len(CENSORED_PREFIX):].strip() if censored else text
    if not number_text:
        return InvalidQuantity(raw=text, reason='empty value')

    try:
        magnitude = float(number_text)
    except ValueError:
        return InvalidQuantity(raw=text, reason=f'not a number: {number_text!r}')

    try:
        return CensoredQuantity(magnitude=magnitude, censored=censored)
    except InvalidMeasurement as exc:
        return InvalidQuantity(raw=text, reason=str(exc))


def format_censored(value: Quantity | None, precision: int = DEFAULT_PRECISION) -> str:
    if value is None:
        return '-'
    return value.format(precision)


def format_stored_concentration(value: Any, precision: int = DEFAULT_PRECISION) -> str:
    """Re-format a concentration string as stored on a sample record.

    Blank values read ``-``; text that does not parse is shown unchanged so
    that operator notes such as ``"Failed"`` survive into the report.
    """
    if value is None:
        return '-'
    text = str(value).strip()
    if not text:
        return '-'
    parsed = parse_censored(text)
    if isinstance(parsed, InvalidQuantity):
        return text
    return parsed.format(precision)
