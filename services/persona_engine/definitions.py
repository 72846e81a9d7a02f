# services/persona_engine/definitions.py
# Fixed domain tables for the persona derivation engine.
# Everything here is data: calculators in this package consume these tables
# and never inline their own question indices, polarities or thresholds.

from enum import Enum
from typing import Dict, List, Optional, Tuple


class Drive(str, Enum):
    """The seven drives, declared in canonical (tie-break) order."""
    EXPLORATION = "Exploration"
    ACHIEVEMENT = "Achievement"
    DOMINANCE = "Dominance"
    PLEASURE = "Pleasure"
    CARE = "Care"
    AFFILIATION = "Affiliation"
    VALUE = "Value"


DRIVE_NAMES: List[str] = [d.value for d in Drive]
DRIVE_ORDER: Dict[str, int] = {name: idx for idx, name in enumerate(DRIVE_NAMES)}


class PersonaLayer(str, Enum):
    INNATE = "innate"
    SURFACE = "surface"
    IMPOSED = "imposed"

    @classmethod
    def parse(cls, value) -> "PersonaLayer":
        """Accepts enum members, canonical names and the legacy private/public aliases."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = LAYER_ALIASES.get(key, key)
        return cls(key)


LAYER_ALIASES: Dict[str, str] = {
    "private": PersonaLayer.SURFACE.value,
    "public": PersonaLayer.IMPOSED.value,
}

# --- Numeric constants ---

LIKERT_MIN = 1
LIKERT_MAX = 5
LIKERT_COMPLEMENT = 6       # inverse item = 6 - answer
VECTOR_MIN = 0.0
VECTOR_MAX = 5.0

# Flow model
SATISFACTION_ADEQUATE = 2.5
DEFAULT_DRAIN_SIGNIFICANCE = 0.01
DEFAULT_TRANSFER_SIGNIFICANCE = 0.01

# Imposed layer dissatisfaction gain
IMPOSED_DISSATISFACTION_GAIN = 1.25
IMPOSED_ITEMS_PER_DRIVE = 3

# Axis classifier
AXIS_DECISIVE_THRESHOLD = 3.0
AXIS_STRONG_THRESHOLD = 3.8

# Fit / capping
CAP_TOLERANCE = 1e-9

# Drain report display thresholds
REPORT_PATH_DISPLAY_THRESHOLD = 0.1

# Bumped whenever a table or formula below changes; part of every fingerprint.
PERSONA_DERIVED_VERSION = "2026-01-05.v1"

# --- Polarity ---

DIRECT = 1
INVERSE = -1

# --- Questionnaire pair tables ---
# Question k (1-based) weighs the drive pair at index k-1.

INNATE_PAIRS: List[Tuple[str, str]] = [
    ("exploration", "achievement"),
    ("exploration", "dominance"),
    ("exploration", "pleasure"),
    ("exploration", "affiliation"),
    ("exploration", "care"),
    ("exploration", "value"),
    ("affiliation", "pleasure"),
    ("dominance", "care"),
    ("achievement", "care"),
    ("affiliation", "achievement"),
    ("dominance", "affiliation"),
    ("care", "pleasure"),
    ("achievement", "value"),
    ("dominance", "value"),
    ("value", "pleasure"),
    ("achievement", "pleasure"),
    ("care", "affiliation"),
]

SURFACE_PAIRS: List[Tuple[str, str]] = [
    ("exploration", "achievement"),
    ("exploration", "dominance"),
    ("exploration", "pleasure"),
    ("exploration", "care"),
    ("exploration", "affiliation"),
    ("exploration", "value"),
    ("care", "achievement"),
    ("care", "dominance"),
    ("care", "pleasure"),
    ("affiliation", "achievement"),
    ("affiliation", "dominance"),
    ("affiliation", "pleasure"),
    ("value", "achievement"),
    ("value", "dominance"),
    ("value", "pleasure"),
    ("pleasure", "achievement"),
    ("care", "affiliation"),
    ("dominancePrivate", "dominancePublic"),
    ("affiliationPrivate", "affiliationPublic"),
    ("pleasurePrivate", "pleasurePublic"),
]

# (front polarity, back polarity) per layer
PAIR_POLARITY: Dict[PersonaLayer, Tuple[int, int]] = {
    PersonaLayer.INNATE: (DIRECT, INVERSE),
    PersonaLayer.SURFACE: (INVERSE, DIRECT),
}

PAIR_TABLES: Dict[PersonaLayer, List[Tuple[str, str]]] = {
    PersonaLayer.INNATE: INNATE_PAIRS,
    PersonaLayer.SURFACE: SURFACE_PAIRS,
}

QuestionItem = Tuple[int, int]  # (question number, polarity)


def _pair_token_drive(token: str) -> str:
    base = token.replace("Private", "").replace("Public", "")
    return base[:1].upper() + base[1:]


def _build_question_map(layer: PersonaLayer) -> Dict[str, List[QuestionItem]]:
    front_pol, back_pol = PAIR_POLARITY[layer]
    mapping: Dict[str, List[QuestionItem]] = {name: [] for name in DRIVE_NAMES}
    for idx, (front, back) in enumerate(PAIR_TABLES[layer], start=1):
        front_drive = _pair_token_drive(front)
        back_drive = _pair_token_drive(back)
        mapping[front_drive].append((idx, front_pol))
        # Self-pairs (private vs public expression) count once, on the front side.
        if back_drive != front_drive:
            mapping[back_drive].append((idx, back_pol))
    return mapping


DRIVE_QUESTION_MAP: Dict[PersonaLayer, Dict[str, List[QuestionItem]]] = {
    layer: _build_question_map(layer) for layer in PAIR_TABLES
}

QUESTION_COUNTS: Dict[PersonaLayer, int] = {
    PersonaLayer.INNATE: len(INNATE_PAIRS),
    PersonaLayer.SURFACE: len(SURFACE_PAIRS),
    PersonaLayer.IMPOSED: IMPOSED_ITEMS_PER_DRIVE * len(DRIVE_NAMES),
}


def imposed_questions(drive_index: int) -> Tuple[int, int, int]:
    """Question numbers (environment, competence, self interest) for a drive."""
    base = IMPOSED_ITEMS_PER_DRIVE * drive_index
    return base + 1, base + 2, base + 3


# --- Axis match-up groups ---

class AxisKey(str, Enum):
    ENERGY = "energy"
    PERCEPTION = "perception"
    JUDGMENT = "judgment"
    ORIENTATION = "orientation"


AMBIVALENT = "Ambivalent"


class MatchupGroup:
    """One scored question group that votes for a pole."""

    __slots__ = ("pole", "archetype_id", "annotation", "items", "strong_archetype_id")

    def __init__(
        self,
        pole: str,
        archetype_id: str,
        annotation: str,
        items: List[QuestionItem],
        strong_archetype_id: Optional[str] = None,
    ):
        self.pole = pole
        self.archetype_id = archetype_id
        self.annotation = annotation
        self.items = items
        self.strong_archetype_id = strong_archetype_id

    def __repr__(self) -> str:
        return f"MatchupGroup({self.pole!r}, {self.archetype_id!r}, items={self.items!r})"


class AxisSpec:
    """Both poles of one axis plus the per-layer match-up groups."""

    __slots__ = ("key", "poles", "letters", "ambivalent_archetype_id", "groups")

    def __init__(
        self,
        key: AxisKey,
        poles: Tuple[str, str],
        letters: Dict[str, str],
        ambivalent_archetype_id: str,
        groups: Dict[PersonaLayer, List[MatchupGroup]],
    ):
        self.key = key
        self.poles = poles
        self.letters = letters
        self.ambivalent_archetype_id = ambivalent_archetype_id
        self.groups = groups


def _d(q: int) -> QuestionItem:
    return (q, DIRECT)


def _i(q: int) -> QuestionItem:
    return (q, INVERSE)


ENERGY_AXIS = AxisSpec(
    key=AxisKey.ENERGY,
    poles=("Introvert", "Extrovert"),
    letters={"Introvert": "I", "Extrovert": "E"},
    ambivalent_archetype_id="Adaptive Navigator",
    groups={
        PersonaLayer.INNATE: [
            MatchupGroup("Introvert", "Exploration Introvert", "I_exploration", [_d(2), _d(3), _d(4)]),
            MatchupGroup("Introvert", "Care Introvert", "I_care", [_d(12), _i(8)]),
            MatchupGroup("Extrovert", "Dominant Extrovert", "E_dominance", [_d(8), _i(2)]),
            MatchupGroup("Extrovert", "Pleasure Extrovert", "E_pleasure", [_i(3), _i(12)]),
            MatchupGroup("Extrovert", "Social Extrovert", "E_affiliation", [_i(4)]),
        ],
        PersonaLayer.SURFACE: [
            MatchupGroup("Introvert", "Exploration Introvert", "I_exploration", [_i(2), _i(3), _i(5)]),
            MatchupGroup("Introvert", "Care Introvert", "I_care", [_i(8), _i(9), _i(17)]),
            MatchupGroup("Extrovert", "Dominant Extrovert", "E_dominance", [_d(2), _d(8), _d(18)]),
            MatchupGroup("Extrovert", "Pleasure Extrovert", "E_pleasure", [_d(3), _d(9), _d(20)]),
            MatchupGroup("Extrovert", "Social Extrovert", "E_affiliation", [_d(5), _d(17), _d(19)]),
        ],
    },
)

PERCEPTION_AXIS = AxisSpec(
    key=AxisKey.PERCEPTION,
    poles=("Sensing", "Intuitive"),
    letters={"Sensing": "S", "Intuitive": "N"},
    ambivalent_archetype_id="Perceptive Generalist",
    groups={
        PersonaLayer.INNATE: [
            MatchupGroup("Sensing", "Pragmatic Realist", "S_practical", [_i(1)], "Detail Specialist"),
            MatchupGroup("Intuitive", "Insight Explorer", "N_patterns", [_d(1)], "Conceptual Visionary"),
        ],
        PersonaLayer.SURFACE: [
            MatchupGroup("Sensing", "Pragmatic Realist", "S_practical", [_d(1)], "Detail Specialist"),
            MatchupGroup("Intuitive", "Insight Explorer", "N_patterns", [_i(1)], "Conceptual Visionary"),
        ],
    },
)

JUDGMENT_AXIS = AxisSpec(
    key=AxisKey.JUDGMENT,
    poles=("Thinking", "Feeling"),
    letters={"Thinking": "T", "Feeling": "F"},
    ambivalent_archetype_id="Adaptive Mediator",
    groups={
        PersonaLayer.INNATE: [
            MatchupGroup("Thinking", "Principled Strategist", "T_principles", [_d(4), _d(5), _d(6)], "Analytical Architect"),
            MatchupGroup("Feeling", "Empathetic Guardian", "F_care", [_i(4), _i(5), _i(6)], "Moral Convictionist"),
        ],
        PersonaLayer.SURFACE: [
            MatchupGroup("Thinking", "Principled Strategist", "T_principles", [_i(4), _i(5), _i(6)], "Analytical Architect"),
            MatchupGroup("Feeling", "Empathetic Guardian", "F_care", [_d(4), _d(5), _d(6)], "Moral Convictionist"),
        ],
    },
)

ORIENTATION_AXIS = AxisSpec(
    key=AxisKey.ORIENTATION,
    poles=("Judging", "Perspective"),
    letters={"Judging": "J", "Perspective": "P"},
    ambivalent_archetype_id="Flexible Adaptive Navigator",
    groups={
        PersonaLayer.INNATE: [
            MatchupGroup("Judging", "Goal Judging", "J_goal", [_i(1), _d(13), _d(16)]),
            MatchupGroup("Judging", "Process Judging", "J_process", [_i(6), _i(13), _d(15)]),
            MatchupGroup("Perspective", "Curious Perspective", "P_curious", [_d(1), _d(3), _d(6)]),
            MatchupGroup("Perspective", "Fun Perspective", "P_fun", [_i(3), _i(15), _i(16)]),
        ],
        PersonaLayer.SURFACE: [
            MatchupGroup("Judging", "Goal Judging", "J_goal", [_d(1), _d(13), _d(16)]),
            MatchupGroup("Judging", "Process Judging", "J_process", [_d(6), _i(13), _i(15)]),
            MatchupGroup("Perspective", "Curious Perspective", "P_curious", [_i(1), _i(3), _i(6)]),
            MatchupGroup("Perspective", "Fun Perspective", "P_fun", [_d(3), _d(15), _i(16)]),
        ],
    },
)

# Annotations for strong archetypes replace the base annotation.
STRONG_ANNOTATIONS: Dict[str, str] = {
    "Detail Specialist": "S_detail",
    "Conceptual Visionary": "N_vision",
    "Analytical Architect": "T_logic",
    "Moral Convictionist": "F_values",
}

AXES: Dict[AxisKey, AxisSpec] = {
    AxisKey.ENERGY: ENERGY_AXIS,
    AxisKey.PERCEPTION: PERCEPTION_AXIS,
    AxisKey.JUDGMENT: JUDGMENT_AXIS,
    AxisKey.ORIENTATION: ORIENTATION_AXIS,
}

AMBIVALENT_LETTER = "X"

# Which layer contributes each letter of the behaviour code.
BEHAVIOR_CODE_SOURCES: List[Tuple[AxisKey, PersonaLayer]] = [
    (AxisKey.ENERGY, PersonaLayer.SURFACE),
    (AxisKey.PERCEPTION, PersonaLayer.INNATE),
    (AxisKey.JUDGMENT, PersonaLayer.SURFACE),
    (AxisKey.ORIENTATION, PersonaLayer.INNATE),
]

# --- Ideal partner tables ---
# A demand term reads one self drive on a basis layer:
#   direct      -> w * x
#   complement  -> w * (6 - x)
#   gap         -> w * (x - y)   (y read from `minus_drive` on the same layer)

PARTNER_DEMAND_BLOCKS: List[Dict[str, object]] = [
    {
        "self_drive": Drive.CARE.value,
        "basis": PersonaLayer.INNATE,
        "demands": [
            {"partner": Drive.ACHIEVEMENT.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.CARE.value},
            {"partner": Drive.CARE.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.CARE.value},
            {"partner": Drive.EXPLORATION.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.CARE.value},
        ],
    },
    {
        "self_drive": Drive.DOMINANCE.value,
        "basis": PersonaLayer.SURFACE,
        "demands": [
            {"partner": Drive.VALUE.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.DOMINANCE.value},
            {"partner": Drive.AFFILIATION.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.DOMINANCE.value},
            {"partner": Drive.EXPLORATION.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.DOMINANCE.value},
            {"partner": Drive.DOMINANCE.value, "kind": "complement", "layer": PersonaLayer.SURFACE, "drive": Drive.DOMINANCE.value},
        ],
    },
    {
        "self_drive": Drive.ACHIEVEMENT.value,
        "basis": PersonaLayer.SURFACE,
        "demands": [
            {"partner": Drive.ACHIEVEMENT.value, "kind": "complement", "layer": PersonaLayer.SURFACE, "drive": Drive.ACHIEVEMENT.value},
            {"partner": Drive.VALUE.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.ACHIEVEMENT.value},
        ],
    },
    {
        "self_drive": Drive.PLEASURE.value,
        "basis": PersonaLayer.SURFACE,
        "demands": [
            {"partner": Drive.PLEASURE.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.PLEASURE.value},
            {"partner": Drive.CARE.value, "kind": "direct", "layer": PersonaLayer.SURFACE, "drive": Drive.CARE.value},
        ],
    },
    {
        "self_drive": Drive.AFFILIATION.value,
        "basis": PersonaLayer.INNATE,
        "demands": [
            {"partner": Drive.VALUE.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.AFFILIATION.value},
            {"partner": Drive.ACHIEVEMENT.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.AFFILIATION.value},
        ],
    },
    {
        "self_drive": Drive.VALUE.value,
        "basis": PersonaLayer.INNATE,
        "demands": [
            {"partner": Drive.EXPLORATION.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.VALUE.value},
            {"partner": Drive.VALUE.value, "kind": "complement", "layer": PersonaLayer.INNATE, "drive": Drive.VALUE.value},
        ],
    },
    {
        "self_drive": Drive.EXPLORATION.value,
        "basis": PersonaLayer.INNATE,
        "demands": [
            {
                "partner": Drive.ACHIEVEMENT.value,
                "kind": "gap",
                "layer": PersonaLayer.SURFACE,
                "drive": Drive.EXPLORATION.value,
                "minus_drive": Drive.ACHIEVEMENT.value,
            },
            {"partner": Drive.DOMINANCE.value, "kind": "complement", "layer": PersonaLayer.SURFACE, "drive": Drive.EXPLORATION.value},
            {"partner": Drive.EXPLORATION.value, "kind": "direct", "layer": PersonaLayer.INNATE, "drive": Drive.EXPLORATION.value},
        ],
    },
]

# Partner drive -> capping components; each component reads a self drive on a
# basis layer and caps at (6 - value).
PARTNER_CAP_RULES: Dict[str, List[Dict[str, object]]] = {
    Drive.VALUE.value: [
        {"id": "innate_value", "layer": PersonaLayer.INNATE, "drive": Drive.VALUE.value},
        {"id": "innate_exploration", "layer": PersonaLayer.INNATE, "drive": Drive.EXPLORATION.value},
    ],
    Drive.DOMINANCE.value: [
        {"id": "surface_dominance", "layer": PersonaLayer.SURFACE, "drive": Drive.DOMINANCE.value},
        {"id": "innate_exploration", "layer": PersonaLayer.INNATE, "drive": Drive.EXPLORATION.value},
    ],
}
