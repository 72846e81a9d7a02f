# services/persona_engine/partner.py
# Ideal-partner profile: what the user's drives demand from a partner, bounded
# by what the user can reciprocate.

import logging
from typing import Dict, List, Optional

from .definitions import (
    CAP_TOLERANCE,
    DRIVE_NAMES,
    DRIVE_ORDER,
    LIKERT_COMPLEMENT,
    PARTNER_CAP_RULES,
    PARTNER_DEMAND_BLOCKS,
    VECTOR_MAX,
    PersonaLayer,
)
from .models import (
    CapComponent,
    CapMeta,
    DriveVector,
    IdealPartnerProfile,
    PartnerCapResult,
    PartnerRow,
    PersonaVectors,
)
from .vectors import clamp, coerce_answer, empty_vector

logger = logging.getLogger(__name__)


def _self_value(vectors: PersonaVectors, layer: PersonaLayer, drive: str) -> float:
    return coerce_answer(vectors.for_layer(layer).get(drive))


def _demand_term(term: Dict[str, object], weight: float, vectors: PersonaVectors) -> float:
    layer = PersonaLayer.parse(term["layer"])
    x = _self_value(vectors, layer, term["drive"])
    kind = term["kind"]
    if kind == "direct":
        return weight * x
    if kind == "complement":
        return weight * (LIKERT_COMPLEMENT - x)
    if kind == "gap":
        return weight * (x - _self_value(vectors, layer, term["minus_drive"]))
    raise ValueError(f"Unknown demand term kind: {kind}")


def build_partner_demand(vectors: PersonaVectors) -> DriveVector:
    """
    Raw partner demand from the user's own drives.

    Each self drive contributes a block weighted by its strength on the block's
    basis layer. Blocks are combined by taking the maximum per partner drive,
    then floored at 0.
    """
    demand = empty_vector()
    for block in PARTNER_DEMAND_BLOCKS:
        weight = _self_value(vectors, PersonaLayer.parse(block["basis"]), block["self_drive"]) / VECTOR_MAX
        for term in block["demands"]:
            partner = term["partner"]
            demand[partner] = max(demand[partner], _demand_term(term, weight, vectors))
    return {d: max(0.0, v) for d, v in demand.items()}


def cap_partner_demand(raw_demand: DriveVector, self_vectors: PersonaVectors) -> PartnerCapResult:
    """
    Bounds partner demand by the user's own reciprocity.

    Each capping component caps at 6 - (self drive on its basis layer), with the
    self value clamped to [0, 5]. The drive's cap is the minimum over its
    components; drives without rules pass through unchanged.

    Args:
        raw_demand: Uncapped partner demand.
        self_vectors: The user's persona vectors.

    Returns:
        PartnerCapResult with the capped vector and per-drive explanation.
    """
    capped: DriveVector = {}
    meta: Dict[str, CapMeta] = {}

    for drive in DRIVE_NAMES:
        raw = float(raw_demand.get(drive, 0.0) or 0.0)
        rules = PARTNER_CAP_RULES.get(drive)
        if not rules:
            capped[drive] = raw
            meta[drive] = CapMeta(raw=raw, capped=raw)
            continue

        components: List[CapComponent] = []
        for rule in rules:
            layer = PersonaLayer.parse(rule["layer"])
            self_val = clamp(_self_value(vectors=self_vectors, layer=layer, drive=rule["drive"]))
            components.append(
                CapComponent(
                    id=rule["id"],
                    layer=layer,
                    drive=rule["drive"],
                    self_value=self_val,
                    cap=clamp(LIKERT_COMPLEMENT - self_val),
                )
            )

        cap = min(c.cap for c in components)
        is_capped = raw > cap + CAP_TOLERANCE
        final = min(raw, cap)
        capped[drive] = final
        meta[drive] = CapMeta(
            raw=raw,
            cap=cap,
            capped=final,
            is_capped=is_capped,
            components=components,
            binding=[c.id for c in components if c.cap <= cap + CAP_TOLERANCE],
        )

    return PartnerCapResult(capped_demand=capped, cap_meta=meta)


def ideal_partner_profile(self_vectors: PersonaVectors) -> IdealPartnerProfile:
    """Builds, caps and ranks the ideal-partner drive profile."""
    raw = build_partner_demand(self_vectors)
    capped = cap_partner_demand(raw, self_vectors)
    ideal = {d: clamp(capped.capped_demand[d]) for d in DRIVE_NAMES}

    peak = max(ideal.values()) if ideal else 0.0
    ordered = sorted(DRIVE_NAMES, key=lambda d: (-ideal[d], DRIVE_ORDER[d]))
    rows = [
        PartnerRow(
            drive=d,
            ideal=ideal[d],
            display_score=(ideal[d] / peak * VECTOR_MAX) if peak > 0 else 0.0,
            is_capped=capped.cap_meta[d].is_capped,
            rank=idx,
        )
        for idx, d in enumerate(ordered, start=1)
    ]
    top: Optional[str] = rows[0].drive if rows and rows[0].ideal > 0 else None

    logger.debug(f"Ideal partner profile computed, top drive={top}")
    return IdealPartnerProfile(raw_demand=raw, capped=capped, ideal=ideal, rows=rows, top_drive=top)
