# services/persona_engine/axes.py
# Jung-style axis classifier. Works on raw answers, not on drive vectors.

import logging
from typing import Dict, List, Optional, Tuple, Union

from .definitions import (
    AMBIVALENT,
    AMBIVALENT_LETTER,
    AXES,
    AXIS_DECISIVE_THRESHOLD,
    AXIS_STRONG_THRESHOLD,
    BEHAVIOR_CODE_SOURCES,
    STRONG_ANNOTATIONS,
    AxisKey,
    AxisSpec,
    MatchupGroup,
    PersonaLayer,
)
from .models import AxisClassification, AxisResult, JungProfile, RawPersonaAnswers
from .vectors import answer, polarized

logger = logging.getLogger(__name__)


def _resolve_axis(axis: Union[AxisSpec, AxisKey, str]) -> AxisSpec:
    if isinstance(axis, AxisSpec):
        return axis
    return AXES[AxisKey(axis)]


def group_score(raw: RawPersonaAnswers, group: MatchupGroup) -> float:
    """Arithmetic mean of the group's polarity-corrected answers."""
    if not group.items:
        return 0.0
    return sum(polarized(answer(raw, q), pol) for q, pol in group.items) / len(group.items)


def _ambivalent_annotation(spec: AxisSpec) -> str:
    return f"{AMBIVALENT_LETTER}_{spec.key.value}"


def classify_axis(
    raw: RawPersonaAnswers,
    axis: Union[AxisSpec, AxisKey, str],
    layer: Optional[PersonaLayer] = None,
) -> AxisClassification:
    """
    Classifies one persona layer on one bipolar axis.

    A pole wins when at least one of its groups is decisive (mean above the
    decisive threshold) and no group of the opposite pole is. Otherwise the
    layer is Ambivalent.

    Args:
        raw: Innate or surface questionnaire row.
        axis: Axis spec or key.
        layer: Overrides the row's own layer.

    Returns:
        The pole, archetype id, annotation and every group's mean.

    Raises:
        ValueError: For the imposed layer, which has no match-up groups.
    """
    spec = _resolve_axis(axis)
    layer = PersonaLayer.parse(layer if layer is not None else raw.layer)
    if layer not in spec.groups:
        raise ValueError(f"Axis '{spec.key.value}' cannot classify the {layer.value} layer")

    groups = spec.groups[layer]
    scores: List[Tuple[MatchupGroup, float]] = [(g, group_score(raw, g)) for g in groups]
    decisive = [(g, s) for g, s in scores if s > AXIS_DECISIVE_THRESHOLD]
    decisive_poles = {g.pole for g, _ in decisive}
    group_scores = {g.archetype_id: s for g, s in scores}

    if len(decisive_poles) != 1:
        return AxisClassification(
            pole=AMBIVALENT,
            archetype_id=spec.ambivalent_archetype_id,
            annotation=_ambivalent_annotation(spec),
            group_scores=group_scores,
        )

    # max() keeps the first of equal maxima, i.e. group-priority order.
    best, best_score = max(decisive, key=lambda gs: gs[1])
    archetype_id = best.archetype_id
    annotation = best.annotation
    if best.strong_archetype_id and best_score > AXIS_STRONG_THRESHOLD:
        archetype_id = best.strong_archetype_id
        annotation = STRONG_ANNOTATIONS.get(archetype_id, annotation)

    return AxisClassification(
        pole=best.pole,
        archetype_id=archetype_id,
        annotation=annotation,
        group_scores=group_scores,
    )


def compare_axis(
    innate_raw: RawPersonaAnswers,
    surface_raw: RawPersonaAnswers,
    axis: Union[AxisSpec, AxisKey, str],
) -> AxisResult:
    spec = _resolve_axis(axis)
    innate = classify_axis(innate_raw, spec, PersonaLayer.INNATE)
    surface = classify_axis(surface_raw, spec, PersonaLayer.SURFACE)
    return AxisResult(
        axis=spec.key.value,
        innate=innate,
        surface=surface,
        aligned=innate.pole == surface.pole,
    )


def pole_letter(axis: Union[AxisSpec, AxisKey, str], pole: str) -> str:
    spec = _resolve_axis(axis)
    return spec.letters.get(pole, AMBIVALENT_LETTER)


def persona_code(results: Dict[AxisKey, AxisResult], layer: PersonaLayer) -> str:
    return "".join(
        pole_letter(key, getattr(results[key], layer.value).pole) for key in AXES
    )


def behavior_code(results: Dict[AxisKey, AxisResult]) -> str:
    """Mixes layers: how the person acts (surface) over how they take in and settle things (innate)."""
    return "".join(
        pole_letter(key, getattr(results[key], layer.value).pole)
        for key, layer in BEHAVIOR_CODE_SOURCES
    )


def classify_profile(innate_raw: RawPersonaAnswers, surface_raw: RawPersonaAnswers) -> JungProfile:
    results = {key: compare_axis(innate_raw, surface_raw, key) for key in AXES}
    profile = JungProfile(
        energy=results[AxisKey.ENERGY],
        perception=results[AxisKey.PERCEPTION],
        judgment=results[AxisKey.JUDGMENT],
        orientation=results[AxisKey.ORIENTATION],
        surface_code=persona_code(results, PersonaLayer.SURFACE),
        innate_code=persona_code(results, PersonaLayer.INNATE),
        behavior_code=behavior_code(results),
    )
    logger.debug(f"Jung profile: surface={profile.surface_code} innate={profile.innate_code}")
    return profile
