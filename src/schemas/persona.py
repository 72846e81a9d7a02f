from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from services.persona_engine.drain_report import DrainReport
from services.persona_engine.models import (
    DerivationRecord,
    IdealPartnerProfile,
    JungProfile,
    ProfessionFit,
)


class DerivedResponse(BaseModel):
    status: str
    reasons: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    record: DerivationRecord


class DrainReportResponse(BaseModel):
    status: str
    report: DrainReport


class JungReportResponse(BaseModel):
    status: str
    profile: JungProfile


class PartnerReportResponse(BaseModel):
    status: str
    profile: IdealPartnerProfile


class ProfessionFitResponse(BaseModel):
    status: str
    weight_mode: str
    professions: List[ProfessionFit]


class CustomJobRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    demand: Dict[str, float]  # drive name -> 0..5; omitted drives demand nothing
    weight_mode: Literal["demand", "mixed_max"] = "demand"


class CustomJobResponse(BaseModel):
    status: str
    fit: ProfessionFit
