import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from services.persona_engine.definitions import PersonaLayer
from services.persona_engine.models import DerivationRecord, RawPersonaAnswers

logger = logging.getLogger(__name__)


class InMemoryQuestionnaireStore:
    """Process-local questionnaire rows, for tests and local runs."""

    def __init__(self):
        self._rows: Dict[Tuple[str, PersonaLayer], RawPersonaAnswers] = {}

    async def submit_answers(self, user_id: str, layer, answers: Dict[str, Any]) -> RawPersonaAnswers:
        row = RawPersonaAnswers(
            user_id=user_id,
            layer=layer,
            answers=answers,
            submitted_at=datetime.now(timezone.utc),
        )
        # Resubmission supersedes the previous row
        self._rows[(user_id, row.layer)] = row
        return row

    async def get_raw_answers(self, user_id: str, layer: PersonaLayer) -> Optional[RawPersonaAnswers]:
        return self._rows.get((user_id, PersonaLayer.parse(layer)))


class InMemoryDerivationStore:
    def __init__(self):
        self._records: Dict[str, str] = {}

    async def get_derivation_record(self, user_id: str) -> Optional[DerivationRecord]:
        payload = self._records.get(user_id)
        if payload is None:
            return None
        return DerivationRecord.model_validate_json(payload)

    async def put_derivation_record(self, user_id: str, record: DerivationRecord) -> None:
        # Stored serialised so callers never share a mutable record
        self._records[user_id] = record.model_dump_json()
        logger.debug(f"Stored derivation record for user {user_id} in memory")
