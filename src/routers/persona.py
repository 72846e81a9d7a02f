import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from services.persona_engine.drain_report import build_drain_report
from services.persona_engine.fit import rank_professions, simulate_custom_job
from services.persona_engine.loader import load_profession_catalog_from_file
from services.persona_engine.models import (
    CatalogValidationError,
    MalformedAnswerError,
    ProfessionCatalog,
)
from services.persona_engine.partner import ideal_partner_profile
from src.core.config import get_settings
from src.derivation.factory import get_manager
from src.derivation.manager import DerivationManager, DerivationOutcome
from src.schemas.persona import (
    CustomJobRequest,
    CustomJobResponse,
    DerivedResponse,
    DrainReportResponse,
    JungReportResponse,
    PartnerReportResponse,
    ProfessionFitResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

UNAVAILABLE = "report temporarily unavailable"


def get_derivation_manager() -> DerivationManager:
    return get_manager()


def get_profession_catalog() -> ProfessionCatalog:
    path = get_settings().profession_catalog_path
    try:
        return load_profession_catalog_from_file(path)
    except CatalogValidationError as e:
        logger.error(f"Profession catalog unavailable: {e}")
        raise HTTPException(status_code=503, detail=UNAVAILABLE)


async def _derive(manager: DerivationManager, user_id: str, force: bool = False) -> DerivationOutcome:
    """Runs ensure_derived and maps every failure to a user-facing HTTP error."""
    try:
        outcome = await manager.ensure_derived(user_id, force=force)
    except MalformedAnswerError as e:
        logger.warning(f"Rejected malformed answers for user {user_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error deriving persona for user {user_id}: {e}")
        raise HTTPException(status_code=503, detail=UNAVAILABLE)

    if outcome.status == "missing_tests":
        raise HTTPException(
            status_code=409,
            detail={
                "status": "missing_tests",
                "missing_layers": [layer.value for layer in outcome.missing_layers],
            },
        )
    return outcome


@router.get("/persona/{user_id}/derived", response_model=DerivedResponse)
async def get_derived(
    user_id: str,
    force: bool = Query(False),
    manager: DerivationManager = Depends(get_derivation_manager),
):
    """Returns the user's derivation record, recomputing it when stale."""
    outcome = await _derive(manager, user_id, force=force)
    return DerivedResponse(
        status=outcome.status,
        reasons=outcome.reasons,
        error=outcome.error,
        record=outcome.record,
    )


@router.get("/persona/{user_id}/reports/drain", response_model=DrainReportResponse)
async def get_drain_report(
    user_id: str,
    manager: DerivationManager = Depends(get_derivation_manager),
):
    outcome = await _derive(manager, user_id)
    return DrainReportResponse(status=outcome.status, report=build_drain_report(outcome.record.flow))


@router.get("/persona/{user_id}/reports/jung", response_model=JungReportResponse)
async def get_jung_report(
    user_id: str,
    manager: DerivationManager = Depends(get_derivation_manager),
):
    outcome = await _derive(manager, user_id)
    return JungReportResponse(status=outcome.status, profile=outcome.record.jung)


@router.get("/persona/{user_id}/reports/partner", response_model=PartnerReportResponse)
async def get_partner_report(
    user_id: str,
    manager: DerivationManager = Depends(get_derivation_manager),
):
    outcome = await _derive(manager, user_id)
    return PartnerReportResponse(status=outcome.status, profile=ideal_partner_profile(outcome.record.vectors))


@router.get("/persona/{user_id}/reports/profession-fit", response_model=ProfessionFitResponse)
async def get_profession_fit(
    user_id: str,
    weight_mode: Literal["demand", "mixed_max"] = Query("demand"),
    limit: int = Query(10, ge=1, le=200),
    manager: DerivationManager = Depends(get_derivation_manager),
    catalog: ProfessionCatalog = Depends(get_profession_catalog),
):
    """Ranks catalog professions by aspired fit, then job fit."""
    outcome = await _derive(manager, user_id)
    record = outcome.record
    fits = rank_professions(catalog, record.flow, record.vectors, weight_mode=weight_mode, limit=limit)
    return ProfessionFitResponse(status=outcome.status, weight_mode=weight_mode, professions=fits)


@router.post("/persona/{user_id}/reports/profession-fit/custom", response_model=CustomJobResponse)
async def post_custom_job(
    user_id: str,
    request: CustomJobRequest,
    manager: DerivationManager = Depends(get_derivation_manager),
):
    """Scores a user-described job against the cached vectors without touching the catalog."""
    outcome = await _derive(manager, user_id)
    record = outcome.record
    fit = simulate_custom_job(request.name, request.demand, record.flow, record.vectors, request.weight_mode)
    return CustomJobResponse(status=outcome.status, fit=fit)
