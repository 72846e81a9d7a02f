import logging
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from services.persona_engine.definitions import PersonaLayer
from services.persona_engine.engine import PersonaEngine, layer_fingerprint
from services.persona_engine.models import DerivationRecord, RawPersonaAnswers
from src.stores.base import DerivationStore, QuestionnaireStore, StoreError

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["missing_tests", "cached", "recomputed", "upsert_failed"]

# --- Reasons ---
REASON_FORCED = "forced"
REASON_MISSING_DERIVED = "missing_derived"
REASON_DERIVED_READ_FAILED = "derived_read_failed"
REASON_VERSION_CHANGED = "derived_version_changed"
REASON_CONFIG_CHANGED = "engine_config_changed"
REASON_UPSERT_FAILED = "upsert_failed"


def layer_changed_reason(layer: PersonaLayer) -> str:
    return f"test_changed_{layer.value}"


class DerivationOutcome(BaseModel):
    status: OutcomeStatus
    record: Optional[DerivationRecord] = None
    missing_layers: List[PersonaLayer] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class DerivationManager:
    """
    Compute once, reuse until stale.

    Reads the three questionnaire rows, compares their fingerprint with the
    stored derivation, and recomputes only when they differ. Writes are
    best-effort: a failed upsert still returns the fresh record.
    """

    def __init__(
        self,
        questionnaires: QuestionnaireStore,
        derivations: DerivationStore,
        engine: Optional[PersonaEngine] = None,
    ):
        self.questionnaires = questionnaires
        self.derivations = derivations
        self.engine = engine or PersonaEngine()

    async def _load_rows(self, user_id: str) -> Dict[PersonaLayer, Optional[RawPersonaAnswers]]:
        # One store call at a time: read all three, then compute, then write.
        rows: Dict[PersonaLayer, Optional[RawPersonaAnswers]] = {}
        for layer in PersonaLayer:
            rows[layer] = await self.questionnaires.get_raw_answers(user_id, layer)
        return rows

    def _stale_reasons(self, stored: DerivationRecord, rows: Dict[PersonaLayer, RawPersonaAnswers]) -> List[str]:
        reasons: List[str] = []
        if stored.derived_version != self.engine.version:
            reasons.append(REASON_VERSION_CHANGED)
        if stored.engine_config != self.engine.config:
            reasons.append(REASON_CONFIG_CHANGED)
        for layer, raw in rows.items():
            if stored.layer_fingerprints.get(layer.value) != layer_fingerprint(raw):
                reasons.append(layer_changed_reason(layer))
        return reasons

    async def ensure_derived(self, user_id: str, force: bool = False) -> DerivationOutcome:
        """
        Returns a fresh DerivationRecord for the user, recomputing only when needed.

        Args:
            user_id: The user whose persona rows to derive.
            force: Recompute even when the stored record is fresh.

        Returns:
            A DerivationOutcome; ``missing_tests`` carries no record.

        Raises:
            StoreError: When a questionnaire row cannot be read.
        """
        rows = await self._load_rows(user_id)
        missing = [layer for layer, row in rows.items() if row is None]
        if missing:
            logger.info(
                f"User {user_id} is missing tests: {', '.join(l.value for l in missing)}",
                extra={"user_id": user_id},
            )
            return DerivationOutcome(status="missing_tests", missing_layers=missing)

        present: Dict[PersonaLayer, RawPersonaAnswers] = {layer: row for layer, row in rows.items()}
        fingerprint = self.engine.fingerprint(present)

        reasons: List[str] = []
        stored: Optional[DerivationRecord] = None
        try:
            stored = await self.derivations.get_derivation_record(user_id)
        except StoreError as e:
            logger.warning(f"Could not read derivation record for user {user_id}: {e}", extra={"user_id": user_id})
            reasons.append(REASON_DERIVED_READ_FAILED)

        if stored is not None and stored.fingerprint == fingerprint and not force:
            logger.debug(f"Derivation cache hit for user {user_id}", extra={"user_id": user_id})
            return DerivationOutcome(status="cached", record=stored)

        if force:
            reasons.append(REASON_FORCED)
        if stored is None and REASON_DERIVED_READ_FAILED not in reasons:
            reasons.append(REASON_MISSING_DERIVED)
        elif stored is not None:
            reasons.extend(r for r in self._stale_reasons(stored, present) if r not in reasons)

        record = self.engine.derive(
            user_id,
            present[PersonaLayer.INNATE],
            present[PersonaLayer.SURFACE],
            present[PersonaLayer.IMPOSED],
        )

        try:
            await self.derivations.put_derivation_record(user_id, record)
        except StoreError as e:
            logger.error(f"Failed to persist derivation record for user {user_id}: {e}", extra={"user_id": user_id})
            return DerivationOutcome(
                status="upsert_failed",
                record=record,
                reasons=reasons + [REASON_UPSERT_FAILED],
                error=str(e),
            )

        logger.info(
            f"Recomputed derivation for user {user_id}: {', '.join(reasons) or 'no reason'}",
            extra={"user_id": user_id},
        )
        return DerivationOutcome(status="recomputed", record=record, reasons=reasons)
