from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .definitions import DRIVE_NAMES, PersonaLayer

DriveVector = Dict[str, float]


# --- Exceptions ---

class PersonaEngineError(Exception):
    """Base class for persona engine errors."""
    pass


class MalformedAnswerError(PersonaEngineError, ValueError):
    """Raised in strict mode when a questionnaire row carries unusable answers."""

    def __init__(self, layer: PersonaLayer, problems: Dict[str, Any]):
        self.layer = layer
        self.problems = problems
        listed = ", ".join(f"{q}={v!r}" for q, v in problems.items())
        super().__init__(f"Malformed {layer.value} answers: {listed}")


class CatalogValidationError(PersonaEngineError, ValueError):
    """Raised when a profession catalog fails validation beyond its schema."""
    pass


# --- Raw input ---

class RawPersonaAnswers(BaseModel):
    user_id: str
    layer: PersonaLayer
    answers: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None

    @field_validator("layer", mode="before")
    @classmethod
    def _parse_layer(cls, v):
        return PersonaLayer.parse(v)

    @field_validator("answers", mode="before")
    @classmethod
    def _normalise_keys(cls, v):
        # Storage rows name columns q7_answer; the engine addresses q7.
        if not isinstance(v, dict):
            return {}
        out: Dict[str, Any] = {}
        for key, value in v.items():
            k = str(key).strip().lower()
            if k.endswith("_answer"):
                k = k[: -len("_answer")]
            out[k] = value
        return out


# --- Vectors ---

class ImposedDriveBreakdown(BaseModel):
    environment: float
    competence: float
    self_interest: float
    dissatisfaction: float
    satisfaction: float


class PersonaVectors(BaseModel):
    innate: DriveVector
    surface: DriveVector
    imposed: DriveVector

    def for_layer(self, layer: PersonaLayer) -> DriveVector:
        return getattr(self, PersonaLayer.parse(layer).value)


# --- Flow ---

class FlowPath(BaseModel):
    td: str
    sd: str
    dr: float
    lr: float
    drained: float
    transferred: float

    @computed_field
    @property
    def kind(self) -> Literal["drain", "transfer"]:
        return "drain" if self.lr > 0 else "transfer"


class DriveFlowSummary(BaseModel):
    drive: str
    surface_energy: float
    surface_drain_total: float
    surface_transfer_total: float
    rank: int
    paths: List[FlowPath] = Field(default_factory=list)
    significant_drain: bool = False
    significant_transfer: bool = False


# --- Axes ---

class AxisClassification(BaseModel):
    pole: str
    archetype_id: str
    annotation: str
    group_scores: Dict[str, float] = Field(default_factory=dict)


class AxisResult(BaseModel):
    axis: str
    innate: AxisClassification
    surface: AxisClassification
    aligned: bool


class JungProfile(BaseModel):
    energy: AxisResult
    perception: AxisResult
    judgment: AxisResult
    orientation: AxisResult
    surface_code: str
    innate_code: str
    behavior_code: str

    def axes(self) -> List[AxisResult]:
        return [self.energy, self.perception, self.judgment, self.orientation]


# --- Fit & partner ---

class MismatchResult(BaseModel):
    mismatch: DriveVector
    total_deficit: float


class ProfessionFit(BaseModel):
    major: str
    name: str
    demand: DriveVector
    job_score: float
    aspired_score: float
    job_deficit: float
    aspired_deficit: float
    drained_energy: float = 0.0


class CapComponent(BaseModel):
    id: str
    layer: PersonaLayer
    drive: str
    self_value: float
    cap: float


class CapMeta(BaseModel):
    raw: float
    cap: Optional[float] = None
    capped: float
    is_capped: bool = False
    components: List[CapComponent] = Field(default_factory=list)
    binding: List[str] = Field(default_factory=list)


class PartnerCapResult(BaseModel):
    capped_demand: DriveVector
    cap_meta: Dict[str, CapMeta]


class PartnerRow(BaseModel):
    drive: str
    ideal: float
    display_score: float
    is_capped: bool
    rank: int


class IdealPartnerProfile(BaseModel):
    raw_demand: DriveVector
    capped: PartnerCapResult
    ideal: DriveVector
    rows: List[PartnerRow]
    top_drive: Optional[str] = None


# --- Catalog ---

class ProfessionSubtype(BaseModel):
    name: str
    demand: Dict[str, int]

    @field_validator("demand")
    @classmethod
    def _check_drives(cls, v: Dict[str, int]) -> Dict[str, int]:
        missing = [d for d in DRIVE_NAMES if d not in v]
        if missing:
            raise ValueError(f"demand is missing drives: {', '.join(missing)}")
        unknown = [d for d in v if d not in DRIVE_NAMES]
        if unknown:
            raise ValueError(f"demand names unknown drives: {', '.join(unknown)}")
        for drive, value in v.items():
            if not 0 <= value <= 5:
                raise ValueError(f"demand for {drive} must be within 0..5, got {value}")
        return v


class ProfessionMajor(BaseModel):
    name: str
    subtypes: List[ProfessionSubtype]


class ProfessionCatalog(BaseModel):
    version: str
    majors: List[ProfessionMajor]


# --- Derivation ---

class DerivationRecord(BaseModel):
    user_id: str
    vectors: PersonaVectors
    imposed_breakdown: Dict[str, ImposedDriveBreakdown]
    flow: List[DriveFlowSummary]
    jung: JungProfile
    fingerprint: str
    layer_fingerprints: Dict[str, str] = Field(default_factory=dict)
    derived_version: str
    engine_config: Dict[str, Any] = Field(default_factory=dict)
    derived_at: datetime
