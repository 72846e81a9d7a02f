# services/persona_engine/vectors.py
# Drive vector calculator: raw questionnaire rows -> canonical 7-drive vectors.

import logging
import math
from typing import Any, Dict, Optional, Union

from .definitions import (
    DRIVE_NAMES,
    DRIVE_QUESTION_MAP,
    IMPOSED_DISSATISFACTION_GAIN,
    INVERSE,
    LIKERT_COMPLEMENT,
    LIKERT_MAX,
    LIKERT_MIN,
    QUESTION_COUNTS,
    VECTOR_MAX,
    VECTOR_MIN,
    PersonaLayer,
    imposed_questions,
)
from .models import (
    DriveVector,
    ImposedDriveBreakdown,
    MalformedAnswerError,
    PersonaVectors,
    RawPersonaAnswers,
)

logger = logging.getLogger(__name__)


def clamp(x: float, lo: float = VECTOR_MIN, hi: float = VECTOR_MAX) -> float:
    return max(lo, min(hi, x))


def empty_vector(fill: float = 0.0) -> DriveVector:
    return {name: fill for name in DRIVE_NAMES}


def coerce_answer(value: Any) -> float:
    """
    Fail-soft numeric coercion of a single Likert answer.

    Non-numeric, missing and non-finite values become 0 ("no answer"); numeric
    values are clamped to [0, 5].
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(x):
        return 0.0
    return clamp(x)


def answer(raw: RawPersonaAnswers, question: int) -> float:
    return coerce_answer(raw.answers.get(f"q{question}"))


def polarized(value: float, polarity: int) -> float:
    """Applies polarity to a coerced answer; an absent answer (0) stays 0."""
    if value <= 0:
        return 0.0
    return LIKERT_COMPLEMENT - value if polarity == INVERSE else value


def find_malformed(raw: RawPersonaAnswers, layer: Optional[PersonaLayer] = None) -> Dict[str, Any]:
    """
    Lists questions whose value would not survive strict validation.

    Args:
        raw: The questionnaire row.
        layer: Layer to validate against; defaults to the row's own layer.

    Returns:
        Mapping of question key to the offending raw value (None when missing).
    """
    layer = PersonaLayer.parse(layer or raw.layer)
    problems: Dict[str, Any] = {}
    for q in range(1, QUESTION_COUNTS[layer] + 1):
        key = f"q{q}"
        value = raw.answers.get(key)
        if value is None or isinstance(value, bool):
            problems[key] = value
            continue
        try:
            x = float(value)
        except (TypeError, ValueError):
            problems[key] = value
            continue
        if not math.isfinite(x) or x != int(x) or not LIKERT_MIN <= x <= LIKERT_MAX:
            problems[key] = value
    return problems


def _pairwise_vector(raw: RawPersonaAnswers, layer: PersonaLayer) -> DriveVector:
    out = empty_vector()
    for drive, items in DRIVE_QUESTION_MAP[layer].items():
        if not items:
            continue
        total = sum(polarized(answer(raw, q), pol) for q, pol in items)
        out[drive] = clamp(total / len(items))
    return out


def imposed_breakdown(raw: RawPersonaAnswers) -> Dict[str, ImposedDriveBreakdown]:
    """
    Per-drive environment, competence and self-interest readings of the imposed row.

    dissatisfaction = clamp((self_interest - 1) * 1.25 * (1 - environment * competence / 25), 0, 5)
    satisfaction    = 5 - dissatisfaction
    """
    out: Dict[str, ImposedDriveBreakdown] = {}
    for idx, drive in enumerate(DRIVE_NAMES):
        q_env, q_comp, q_self = imposed_questions(idx)
        env = answer(raw, q_env)
        comp = answer(raw, q_comp)
        self_interest = answer(raw, q_self)
        diss = clamp(
            (self_interest - 1) * IMPOSED_DISSATISFACTION_GAIN * (1 - env * comp / 25.0)
        )
        out[drive] = ImposedDriveBreakdown(
            environment=env,
            competence=comp,
            self_interest=self_interest,
            dissatisfaction=diss,
            satisfaction=VECTOR_MAX - diss,
        )
    return out


def _imposed_vector(raw: RawPersonaAnswers) -> DriveVector:
    return {drive: b.satisfaction for drive, b in imposed_breakdown(raw).items()}


def compute_drive_vector(
    raw: RawPersonaAnswers,
    layer: Optional[Union[PersonaLayer, str]] = None,
    strict: bool = False,
) -> DriveVector:
    """
    Computes the canonical drive vector of one questionnaire row.

    Innate and surface rows are pairwise questionnaires: each drive is the mean
    of its polarity-corrected items. The imposed row yields per-drive
    satisfaction of the environment.

    Args:
        raw: The questionnaire row.
        layer: Layer to interpret the row as; defaults to ``raw.layer``.
        strict: When True, malformed answers raise instead of coercing to 0.
            Disabled by default; the engine prefers a weaker vector over no report.

    Returns:
        A DriveVector with every drive present and values in [0, 5].

    Raises:
        MalformedAnswerError: Only in strict mode.
    """
    layer = PersonaLayer.parse(layer if layer is not None else raw.layer)

    if strict:
        problems = find_malformed(raw, layer)
        if problems:
            raise MalformedAnswerError(layer, problems)

    if layer is PersonaLayer.IMPOSED:
        return _imposed_vector(raw)
    return _pairwise_vector(raw, layer)


def compute_persona_vectors(
    innate: RawPersonaAnswers,
    surface: RawPersonaAnswers,
    imposed: RawPersonaAnswers,
    strict: bool = False,
) -> PersonaVectors:
    return PersonaVectors(
        innate=compute_drive_vector(innate, PersonaLayer.INNATE, strict=strict),
        surface=compute_drive_vector(surface, PersonaLayer.SURFACE, strict=strict),
        imposed=compute_drive_vector(imposed, PersonaLayer.IMPOSED, strict=strict),
    )


def simulate_imposed_from_profession(demand: DriveVector, competence: DriveVector) -> DriveVector:
    """What-if imposed reading under a profession: demand(d) * competence(d) / 5."""
    out = empty_vector()
    for d in DRIVE_NAMES:
        out[d] = clamp(coerce_answer(demand.get(d)) * coerce_answer(competence.get(d)) / VECTOR_MAX)
    return out
