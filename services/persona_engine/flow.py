# services/persona_engine/flow.py
# Cross-drive flow model: where surface energy of a drive is routed away from
# it (diverted) and whether that diversion leaks (drain) or is reused (transfer).

import logging
from typing import Dict, List, Optional

from .definitions import (
    DEFAULT_DRAIN_SIGNIFICANCE,
    DEFAULT_TRANSFER_SIGNIFICANCE,
    DRIVE_NAMES,
    DRIVE_ORDER,
    SATISFACTION_ADEQUATE,
    VECTOR_MAX,
    Drive,
)
from .models import DriveFlowSummary, DriveVector, FlowPath, PersonaVectors
from .vectors import clamp, empty_vector

logger = logging.getLogger(__name__)


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)


def _read(vector: Optional[DriveVector], drive: str) -> float:
    # Absent components read as 0.
    if not vector:
        return 0.0
    try:
        return clamp(float(vector.get(drive, 0.0) or 0.0))
    except (TypeError, ValueError):
        return 0.0


def leakage_rate(imposed_satisfaction: float) -> float:
    """0 when the imposed environment satisfies the drive adequately, rising to 1 as it is suppressed."""
    return clamp01((SATISFACTION_ADEQUATE - imposed_satisfaction) / SATISFACTION_ADEQUATE)


def diversion_sources(innate: DriveVector, surface: DriveVector, td: str) -> Dict[str, float]:
    """
    Innately stronger drives that were demoted on the surface relative to td.

    Returns:
        Mapping of source drive to its innate gap over td, canonical order.
    """
    i_td = _read(innate, td)
    s_td = _read(surface, td)
    sources: Dict[str, float] = {}
    for sd in DRIVE_NAMES:
        if sd == td:
            continue
        i_sd = _read(innate, sd)
        if i_sd > i_td and _read(surface, sd) <= s_td:
            sources[sd] = i_sd - i_td
    return sources


def compute_paths(vectors: PersonaVectors, td: str) -> List[FlowPath]:
    """All non-zero flow paths into surface drive td."""
    innate, surface, imposed = vectors.innate, vectors.surface, vectors.imposed
    energy = _read(surface, td)
    excess = max(0.0, energy - _read(innate, td))
    if energy <= 0 or excess <= 0:
        return []

    sources = diversion_sources(innate, surface, td)
    gap_total = sum(sources.values())
    if gap_total <= 0:
        return []

    diverted = clamp01(excess / energy)
    lr = leakage_rate(_read(imposed, td))

    paths: List[FlowPath] = []
    for sd, gap in sources.items():
        dr = clamp01(diverted * gap / gap_total)
        if dr == 0:
            continue
        paths.append(
            FlowPath(
                td=td,
                sd=sd,
                dr=dr,
                lr=lr,
                drained=energy * dr * lr,
                transferred=energy * dr * (1 - lr),
            )
        )
    return paths


def compute_flow(
    vectors: PersonaVectors,
    drain_threshold: float = DEFAULT_DRAIN_SIGNIFICANCE,
    transfer_threshold: float = DEFAULT_TRANSFER_SIGNIFICANCE,
) -> List[DriveFlowSummary]:
    """
    Computes one DriveFlowSummary per drive, in canonical drive order.

    Args:
        vectors: Innate, surface and imposed (satisfaction) vectors.
        drain_threshold: Drain total above which a drive is significantly drained.
        transfer_threshold: Transfer total above which a drive is significantly transferred.

    Returns:
        Summaries in canonical order; ``rank`` orders them by surface energy.
    """
    ranking = sorted(DRIVE_NAMES, key=lambda d: (-_read(vectors.surface, d), DRIVE_ORDER[d]))
    ranks = {d: idx for idx, d in enumerate(ranking, start=1)}

    summaries: List[DriveFlowSummary] = []
    for td in DRIVE_NAMES:
        paths = compute_paths(vectors, td)
        drain_total = sum(p.drained for p in paths)
        transfer_total = sum(p.transferred for p in paths)
        summaries.append(
            DriveFlowSummary(
                drive=td,
                surface_energy=_read(vectors.surface, td),
                surface_drain_total=drain_total,
                surface_transfer_total=transfer_total,
                rank=ranks[td],
                paths=paths,
                significant_drain=drain_total > drain_threshold,
                significant_transfer=transfer_total > transfer_threshold,
            )
        )

    logger.debug(
        f"Flow computed: {sum(len(s.paths) for s in summaries)} paths, "
        f"{sum(1 for s in summaries if s.significant_drain)} significantly drained drives"
    )
    return summaries


# --- Derived vectors ---

def all_paths(flow: List[DriveFlowSummary]) -> List[FlowPath]:
    return [p for s in flow for p in s.paths]


def surface_drain_vector(flow: List[DriveFlowSummary]) -> DriveVector:
    out = empty_vector()
    for s in flow:
        out[s.drive] = clamp(s.surface_drain_total)
    return out


def surface_transfer_vector(flow: List[DriveFlowSummary]) -> DriveVector:
    out = empty_vector()
    for s in flow:
        out[s.drive] = clamp(s.surface_transfer_total)
    return out


def surface_value_transfer(flow: List[DriveFlowSummary], source: str = Drive.VALUE.value) -> DriveVector:
    """Energy each surface drive receives through paths sourced from ``source``."""
    out = empty_vector()
    for p in all_paths(flow):
        if p.sd == source:
            out[p.td] += p.drained + p.transferred
    return {d: clamp(v) for d, v in out.items()}


def surface_adjusted(surface: DriveVector, flow: List[DriveFlowSummary]) -> DriveVector:
    """Job-match vector: surface strength minus what drains out of it."""
    drain = surface_drain_vector(flow)
    return {d: clamp(_read(surface, d) - drain[d]) for d in DRIVE_NAMES}


def surface_aspired(surface: DriveVector, flow: List[DriveFlowSummary]) -> DriveVector:
    """Aspired-match vector: the adjusted vector plus energy routed in from Value."""
    adjusted = surface_adjusted(surface, flow)
    from_value = surface_value_transfer(flow)
    return {d: clamp(adjusted[d] + from_value[d]) for d in DRIVE_NAMES}


def total_drained_energy(flow: List[DriveFlowSummary], innate: DriveVector) -> float:
    """Drained energy weighted by the innate strength of each source drive."""
    return sum(p.drained * _read(innate, p.sd) / VECTOR_MAX for p in all_paths(flow))
