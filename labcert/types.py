from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator


MAX_OBSERVATIONS = 4


class Morphology(str, Enum):
    curly = 'curly'
    straight = 'straight'
    unset = ''


class Disintegrates(str, Enum):
    yes = 'yes'
    no = 'no'
    unset = ''


class SampleSizing(str, Enum):
    mass = 'mass'
    dimensions = 'dimensions'


class TraceCount(str, Enum):
    under_five = '< 5 unequivocal'
    five_to_nineteen = '5-19 unequivocal'
    twenty_plus = '20+ unequivocal <100 visible'
    hundred_plus = '100+ visible'


def _blank_if_none(value: Any) -> Any:
    if value is None:
        return ''
    return value


class FibreObservation(BaseModel):
    name: str = 'Fibre A'
    morphology: Morphology = Morphology.unset
    disintegrates: Disintegrates = Disintegrates.unset

    # Optical properties (free text, as recorded at the microscope)
    ri_liquid: str = ''
    colour: str = ''
    pleochroism: str = 'None'
    birefringence: str = ''
    extinction: str = ''
    sign_of_elongation: str = ''
    fibre_parallel: str = ''
    fibre_perpendicular: str = ''

    result: str = ''

    @field_validator('morphology', 'disintegrates', 'result', mode='before')
    @classmethod
    def coerce_blank(cls, value: Any) -> Any:
        return _blank_if_none(value)


class SampleDimensions(BaseModel):
    x: str = ''
    y: str = ''
    z: str = ''

    @field_validator('x', 'y', 'z', mode='before')
    @classmethod
    def coerce_blank(cls, value: Any) -> Any:
        return _blank_if_none(value)


class SampleAnalysisRecord(BaseModel):
    sample_reference: str
    sample_description: str = ''
    microscope_id: str = ''

    sample_sizing: SampleSizing = SampleSizing.mass
    sample_mass: str = ''
    sample_dimensions: SampleDimensions = Field(default_factory=SampleDimensions)

    ashing: bool = False
    crucible_no: str = ''

    observations: list[FibreObservation] = Field(default_factory=list, max_length=MAX_OBSERVATIONS)
    no_fibres_detected: bool = False

    trace_asbestos: bool = False
    trace_asbestos_content: str = ''
    trace_count: TraceCount | None = None

    final_result: str = ''
    analyst: str = ''
    analysis_date: datetime.date | None = None
    comments: str = ''

    @field_validator('sample_mass', 'final_result', mode='before')
    @classmethod
    def coerce_blank(cls, value: Any) -> Any:
        return _blank_if_none(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complete(self) -> bool:
        from labcert.analysis.fibre_id import is_complete

        return is_complete(self)


class AirSample(BaseModel):
    sample_id: str
    location: str = ''
    start_time: str | None = None
    end_time: str | None = None
    average_flowrate: float | str | None = None
    lead_content: str | None = None
    status: str | None = None

    @property
    def failed(self) -> bool:
        return str(self.status or '').strip().lower() == 'failed'


class ShiftInfo(BaseModel):
    shift_id: str
    date: datetime.date | None = None
    revision: int = 0
    sampler: str = 'N/A'
    description_of_works: str = ''


class ProjectInfo(BaseModel):
    project_id: str = ''
    name: str = ''
    address: str = ''
    client_name: str = ''
    contact_email: str = ''
    contractor: str = ''


class ShiftReportInput(BaseModel):
    shift: ShiftInfo
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    samples: list[AirSample] = Field(default_factory=list)


class FibreReportInput(BaseModel):
    reference: str
    client_name: str = ''
    site_name: str = ''
    report_date: datetime.date | None = None
    revision: int = 0
    analyst: str = ''
    samples: list[SampleAnalysisRecord] = Field(default_factory=list)
