from __future__ import annotations

import logging
from typing import Any

from labcert.types import (
    MAX_OBSERVATIONS,
    Disintegrates,
    FibreObservation,
    Morphology,
    SampleAnalysisRecord,
    SampleSizing,
    TraceCount,
)


logger = logging.getLogger(__name__)

ORGANIC_FIBRES = 'Organic fibres'
SYNTHETIC_MINERAL_FIBRE = 'Synthetic mineral fibre (SMF)'
UNIDENTIFIED_MINERAL_FIBRE = 'Unidentified Mineral Fibre (UMF)'
CHRYSOTILE = 'Chrysotile Asbestos'
AMOSITE = 'Amosite Asbestos'
CROCIDOLITE = 'Crocidolite Asbestos'

# Results an operator may pick when a fibre does not disintegrate.
MANUAL_RESULTS: tuple[str, ...] = (
    CHRYSOTILE,
    AMOSITE,
    CROCIDOLITE,
    UNIDENTIFIED_MINERAL_FIBRE,
    ORGANIC_FIBRES,
    SYNTHETIC_MINERAL_FIBRE,
)

NO_ASBESTOS_DETECTED = 'No asbestos detected'
NO_FIBRES_DETECTED = 'No fibres detected'
ANALYSIS_INCOMPLETE = 'Analysis Incomplete'

# disintegrates == yes -> morphology decides; anything else needs a manual pick.
_CLASSIFICATION_RULES: tuple[tuple[Disintegrates, Morphology, str], ...] = (
    (Disintegrates.yes, Morphology.curly, ORGANIC_FIBRES),
    (Disintegrates.yes, Morphology.straight, SYNTHETIC_MINERAL_FIBRE),
)

PRESETS: dict[str, dict[str, Any]] = {
    'Chrysotile': {
        'morphology': Morphology.curly,
        'disintegrates': Disintegrates.no,
        'ri_liquid': '1.55',
        'colour': 'White',
        'pleochroism': 'None',
        'birefringence': 'low',
        'extinction': 'complete',
        'sign_of_elongation': 'Length-slow',
        'fibre_parallel': 'Blue',
        'fibre_perpendicular': 'Magenta',
        'result': CHRYSOTILE,
    },
    'Amosite': {
        'morphology': Morphology.straight,
        'disintegrates': Disintegrates.no,
        'ri_liquid': '1.67',
        'colour': 'Brown',
        'pleochroism': 'Low',
        'birefringence': 'moderate',
        'extinction': 'complete',
        'sign_of_elongation': 'Length-slow',
        'fibre_parallel': 'Magenta',
        'fibre_perpendicular': 'Yellow',
        'result': AMOSITE,
    },
    'Crocidolite': {
        'morphology': Morphology.straight,
        'disintegrates': Disintegrates.no,
        'ri_liquid': '1.70',
        'colour': 'Blue',
        'pleochroism': 'Low',
        'birefringence': 'low',
        'extinction': 'complete',
        'sign_of_elongation': 'Length-fast',
        'fibre_parallel': 'Blue',
        'fibre_perpendicular': 'Blue',
        'result': CROCIDOLITE,
    },
}

_CLASSIFYING_FIELDS = frozenset({'morphology', 'disintegrates'})


def _as_morphology(value: Any) -> Morphology:
    if isinstance(value, Morphology):
        return value
    try:
        return Morphology(str(value or '').strip().lower())
    except ValueError:
        return Morphology.unset


def _as_disintegrates(value: Any) -> Disintegrates:
    if isinstance(value, Disintegrates):
        return value
    try:
        return Disintegrates(str(value or '').strip().lower())
    except ValueError:
        return Disintegrates.unset


def classify(morphology: Any, disintegrates: Any) -> str | None:
    """Automatic determination for a fibre, or ``None`` when it must be picked by hand."""
    m = _as_morphology(morphology)
    d = _as_disintegrates(disintegrates)
    for rule_disintegrates, rule_morphology, result in _CLASSIFICATION_RULES:
        if d is rule_disintegrates and m is rule_morphology:
            return result
    return None


def update_observation(
    observation: FibreObservation,
    field: str,
    value: Any,
    *,
    auto_classify: bool = True,
) -> FibreObservation:
    """Return a copy of ``observation`` with one field edited.

    Editing morphology or disintegrates clears the result and recomputes it;
    pass ``auto_classify=False`` when the operator has overridden the result
    and it must be kept. A manually set result must be one of
    ``MANUAL_RESULTS``.
    """
    if field not in FibreObservation.model_fields:
        raise KeyError(f'Unknown fibre observation field: {field}')
    if field == 'result' and _filled(value) and str(value).strip() not in MANUAL_RESULTS:
        raise ValueError(f'Not a recognised fibre result: {value!r}')

    payload = observation.model_dump()
    payload[field] = value
    updated = FibreObservation.model_validate(payload)

    if field in _CLASSIFYING_FIELDS and auto_classify:
        auto_result = classify(updated.morphology, updated.disintegrates)
        logger.debug('Reclassified %s after %s change: %r', updated.name, field, auto_result)
        updated = updated.model_copy(update={'result': auto_result or ''})
    return updated


def apply_preset(observation: FibreObservation, preset_name: str) -> FibreObservation:
    preset = PRESETS.get(str(preset_name or '').strip())
    if preset is None:
        return observation
    return observation.model_copy(update=dict(preset))


def observation_name(index: int) -> str:
    return f'Fibre {chr(ord("A") + index)}'


def new_observation(index: int = 0) -> FibreObservation:
    return FibreObservation(name=observation_name(index))


def add_observation(
    observations: list[FibreObservation],
    *,
    limit: int = MAX_OBSERVATIONS,
) -> list[FibreObservation]:
    if len(observations) >= limit:
        return list(observations)
    return [*observations, new_observation(len(observations))]


def ensure_observation(observations: list[FibreObservation]) -> list[FibreObservation]:
    if observations:
        return list(observations)
    return [new_observation(0)]


def remove_observation(observations: list[FibreObservation], index: int) -> list[FibreObservation]:
    remaining = [obs for position, obs in enumerate(observations) if position != index]
    return ensure_observation(remaining)


def _filled(value: Any) -> bool:
    return bool(str(value or '').strip())


def has_sizing(record: SampleAnalysisRecord) -> bool:
    if record.sample_sizing == SampleSizing.mass:
        return _filled(record.sample_mass)
    dims = record.sample_dimensions
    return _filled(dims.x) or _filled(dims.y) or _filled(dims.z)


def is_complete(record: SampleAnalysisRecord) -> bool:
    # Sizing is checked first: resolved fibres without a mass are still incomplete.
    if not has_sizing(record):
        return False
    if record.no_fibres_detected:
        return True
    return bool(record.observations) and all(_filled(obs.result) for obs in record.observations)


def _trace_result(record: SampleAnalysisRecord) -> str | None:
    content = record.trace_asbestos_content.strip()
    if not (record.trace_asbestos and record.trace_count and content):
        return None
    if record.trace_count == TraceCount.under_five:
        return NO_ASBESTOS_DETECTED
    if record.trace_count in (TraceCount.five_to_nineteen, TraceCount.twenty_plus):
        return f'Trace {content} detected'
    return f'{content} detected'


def derive_final_result(record: SampleAnalysisRecord) -> str:
    trace = _trace_result(record)
    if trace is not None:
        return trace
    if record.no_fibres_detected:
        return NO_ASBESTOS_DETECTED
    if not record.observations:
        return NO_FIBRES_DETECTED

    unique: list[str] = []
    for obs in record.observations:
        result = obs.result.strip()
        if result and result not in unique:
            unique.append(result)
    if not unique:
        return ANALYSIS_INCOMPLETE
    return ', '.join(unique)


def resolve_record(record: SampleAnalysisRecord) -> SampleAnalysisRecord:
    """Fill ``final_result`` and guarantee a placeholder observation when fibres are expected."""
    observations = record.observations
    if not record.no_fibres_detected:
        observations = ensure_observation(observations)
    final_result = record.final_result.strip() or derive_final_result(
        record.model_copy(update={'observations': observations})
    )
    return record.model_copy(update={'observations': observations, 'final_result': final_result})
