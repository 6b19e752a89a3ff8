from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable

from labcert.analysis.censored import CensoredQuantity, InvalidQuantity, Quantity, parse_censored
from labcert.types import AirSample


logger = logging.getLogger(__name__)

_REFERENCE_DAY = date(2000, 1, 1)
_TIME_FORMATS = ('%H:%M:%S', '%H:%M')


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _coerce_quantity(content: Any) -> Quantity:
    if isinstance(content, (CensoredQuantity, InvalidQuantity)):
        return content
    return parse_censored(content)


def compute_concentration(
    content: Any,
    flow_rate_lpm: Any,
    duration_minutes: Any,
) -> CensoredQuantity | None:
    """Airborne concentration in mg/m³ from content (µg), flow (L/min) and minutes.

    ``None`` means insufficient data: invalid content, a non-positive flow
    rate or a zero/negative duration. The censoring flag of ``content`` is
    carried onto the result unchanged.
    """
    quantity = _coerce_quantity(content)
    if isinstance(quantity, InvalidQuantity):
        return None

    flow = _coerce_float(flow_rate_lpm)
    if flow is None or flow <= 0:
        return None

    minutes = _coerce_float(duration_minutes)
    if not minutes or minutes <= 0:
        return None

    # (µg / 1000) / (L/min * min / 1000) == mg/m³
    concentration = (quantity.magnitude / 1000) / ((flow * minutes) / 1000)
    return CensoredQuantity(magnitude=concentration, censored=quantity.censored)


def _parse_clock(value: Any) -> time | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    logger.warning('Unreadable clock time %r; treating duration as unknown', text)
    return None


def duration_minutes(start: Any, end: Any) -> int:
    """Whole minutes between two same-day clock times.

    An end time earlier than the start time is taken to cross midnight and
    24 hours are added. Missing or unreadable times give 0.
    """
    start_time = _parse_clock(start)
    end_time = _parse_clock(end)
    if start_time is None or end_time is None:
        return 0

    start_at = datetime.combine(_REFERENCE_DAY, start_time)
    end_at = datetime.combine(_REFERENCE_DAY, end_time)
    if end_at < start_at:
        logger.warning(
            'End time %s is before start time %s; assuming the sample ran overnight',
            end_time.isoformat(),
            start_time.isoformat(),
        )
        end_at += timedelta(days=1)

    minutes = (end_at - start_at).total_seconds() / 60
    return int(math.floor(minutes + 0.5))


@dataclass(frozen=True)
class SampleMeasurement:
    content: Quantity
    flow_rate: float | None
    duration_minutes: int
    failed: bool = False

    @property
    def concentration(self) -> CensoredQuantity | None:
        if self.failed:
            return None
        return compute_concentration(self.content, self.flow_rate, self.duration_minutes)

    @classmethod
    def from_air_sample(cls, sample: AirSample) -> 'SampleMeasurement':
        return cls(
            content=parse_censored(sample.lead_content),
            flow_rate=_coerce_float(sample.average_flowrate),
            duration_minutes=duration_minutes(sample.start_time, sample.end_time),
            failed=sample.failed,
        )


@dataclass
class ExposureAssessment:
    limit_mg_m3: float
    above_limit: list[str] = field(default_factory=list)
    measured: list[str] = field(default_factory=list)

    @property
    def no_data(self) -> bool:
        return not self.measured

    @property
    def all_below_limit(self) -> bool:
        return bool(self.measured) and not self.above_limit


def assess_exposure(samples: Iterable[AirSample], *, limit_mg_m3: float) -> ExposureAssessment:
    """Compare every measured sample in a shift against the exposure limit.

    Censored results are compared by their magnitude, so ``<0.06`` against a
    limit of 0.05 is flagged.
    """
    assessment = ExposureAssessment(limit_mg_m3=limit_mg_m3)
    for sample in samples:
        concentration = SampleMeasurement.from_air_sample(sample).concentration
        if concentration is None:
            continue
        assessment.measured.append(sample.sample_id)
        if concentration.magnitude > limit_mg_m3:
            assessment.above_limit.append(sample.sample_id)
    return assessment
