# services/persona_engine/fit.py
# Profession fit: weighted mismatch between an effective surface vector and a
# job's drive demand.

import logging
from enum import Enum
from typing import Dict, List, Literal, Optional

from .definitions import DRIVE_NAMES, VECTOR_MAX
from .flow import surface_adjusted, surface_aspired, total_drained_energy
from .models import (
    DriveFlowSummary,
    DriveVector,
    MismatchResult,
    PersonaVectors,
    ProfessionCatalog,
    ProfessionFit,
)
from .vectors import clamp, coerce_answer, empty_vector

logger = logging.getLogger(__name__)

WeightMode = Literal["demand", "mixed_max"]

CUSTOM_JOB_MAJOR = "Custom"


class FitMode(str, Enum):
    JOB_MATCH = "job_match"
    ASPIRED_MATCH = "aspired_match"


def _weights(effective: DriveVector, demand: DriveVector, weight_mode: WeightMode) -> DriveVector:
    if weight_mode == "mixed_max":
        raw = {d: max(effective[d], demand[d]) for d in DRIVE_NAMES}
    elif weight_mode == "demand":
        raw = dict(demand)
    else:
        raise ValueError(f"Unknown weight mode: {weight_mode}")

    total = sum(raw.values())
    if total <= 0:
        # All-zero demand: every drive counts equally.
        return {d: 1.0 / len(DRIVE_NAMES) for d in DRIVE_NAMES}
    return {d: raw[d] / total for d in DRIVE_NAMES}


def compute_mismatch(
    effective: DriveVector,
    demand: DriveVector,
    weight_mode: WeightMode = "demand",
) -> MismatchResult:
    """
    Signed per-drive mismatch (effective - demand) and the weighted deficit.

    Args:
        effective: The user's effective surface vector.
        demand: The job's drive demand.
        weight_mode: "demand" weights by demand share; "mixed_max" by max(effective, demand).

    Returns:
        MismatchResult with the signed mismatch and total weighted deficit.
    """
    eff = {d: coerce_answer(effective.get(d)) for d in DRIVE_NAMES}
    dem = {d: coerce_answer(demand.get(d)) for d in DRIVE_NAMES}
    weights = _weights(eff, dem, weight_mode)

    mismatch = {d: eff[d] - dem[d] for d in DRIVE_NAMES}
    total = sum(abs(mismatch[d]) * weights[d] for d in DRIVE_NAMES)
    return MismatchResult(mismatch=mismatch, total_deficit=total)


def score_fit(
    effective: DriveVector,
    demand: DriveVector,
    weight_mode: WeightMode = "demand",
) -> float:
    """Fit score in [0, 5]; 5 means the effective vector meets the demand exactly."""
    deficit = compute_mismatch(effective, demand, weight_mode).total_deficit
    return clamp(VECTOR_MAX - deficit)


def effective_vector(
    flow: List[DriveFlowSummary],
    vectors: PersonaVectors,
    mode: FitMode = FitMode.JOB_MATCH,
) -> DriveVector:
    mode = FitMode(mode)
    if mode is FitMode.ASPIRED_MATCH:
        return surface_aspired(vectors.surface, flow)
    return surface_adjusted(vectors.surface, flow)


def evaluate_profession(
    major: str,
    name: str,
    demand: DriveVector,
    flow: List[DriveFlowSummary],
    vectors: PersonaVectors,
    weight_mode: WeightMode = "demand",
) -> ProfessionFit:
    job_vec = effective_vector(flow, vectors, FitMode.JOB_MATCH)
    aspired_vec = effective_vector(flow, vectors, FitMode.ASPIRED_MATCH)
    job = compute_mismatch(job_vec, demand, weight_mode)
    aspired = compute_mismatch(aspired_vec, demand, weight_mode)
    return ProfessionFit(
        major=major,
        name=name,
        demand={d: coerce_answer(demand.get(d)) for d in DRIVE_NAMES},
        job_score=clamp(VECTOR_MAX - job.total_deficit),
        aspired_score=clamp(VECTOR_MAX - aspired.total_deficit),
        job_deficit=job.total_deficit,
        aspired_deficit=aspired.total_deficit,
        drained_energy=total_drained_energy(flow, vectors.innate),
    )


def rank_professions(
    catalog: ProfessionCatalog,
    flow: List[DriveFlowSummary],
    vectors: PersonaVectors,
    weight_mode: WeightMode = "demand",
    limit: Optional[int] = None,
) -> List[ProfessionFit]:
    """
    Scores every subtype in the catalog and orders them best first.

    Ordering is aspired score, then job score (both descending), then name.
    """
    fits = [
        evaluate_profession(
            major.name,
            subtype.name,
            {d: float(v) for d, v in subtype.demand.items()},
            flow,
            vectors,
            weight_mode,
        )
        for major in catalog.majors
        for subtype in major.subtypes
    ]
    fits.sort(key=lambda f: (-f.aspired_score, -f.job_score, f.name))
    logger.info(f"Ranked {len(fits)} professions against catalog {catalog.version}")
    return fits[:limit] if limit else fits


def simulate_custom_job(
    name: str,
    demand: Dict[str, float],
    flow: List[DriveFlowSummary],
    vectors: PersonaVectors,
    weight_mode: WeightMode = "demand",
) -> ProfessionFit:
    """What-if fit for a user-described job; drives left out of ``demand`` demand nothing."""
    full = empty_vector()
    for d in DRIVE_NAMES:
        full[d] = coerce_answer(demand.get(d))
    return evaluate_profession(CUSTOM_JOB_MAJOR, name, full, flow, vectors, weight_mode)
