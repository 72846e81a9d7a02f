import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.persona_engine.definitions import PersonaLayer
from services.persona_engine.models import DerivationRecord, RawPersonaAnswers
from src.db.models import PersonaAnswerRow, PersonaDerived
from src.stores.base import StoreError

logger = logging.getLogger(__name__)


class SqlQuestionnaireStore:
    """Questionnaire rows in the persona_answers table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def submit_answers(
        self,
        user_id: str,
        layer,
        answers: Dict[str, Any],
        submitted_at: Optional[datetime] = None,
    ) -> RawPersonaAnswers:
        row_model = RawPersonaAnswers(
            user_id=user_id,
            layer=layer,
            answers=answers,
            submitted_at=submitted_at or datetime.now(timezone.utc),
        )
        try:
            async with self.session_factory() as session:
                session.add(
                    PersonaAnswerRow(
                        user_id=user_id,
                        layer=row_model.layer.value,
                        answers=row_model.answers,
                        submitted_at=row_model.submitted_at,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store {row_model.layer.value} answers for user {user_id}: {e}")
            raise StoreError(str(e)) from e
        return row_model

    async def get_raw_answers(self, user_id: str, layer: PersonaLayer) -> Optional[RawPersonaAnswers]:
        layer = PersonaLayer.parse(layer)
        stmt = (
            select(PersonaAnswerRow)
            .where(PersonaAnswerRow.user_id == user_id, PersonaAnswerRow.layer == layer.value)
            .order_by(PersonaAnswerRow.submitted_at.desc())
            .limit(1)
        )
        try:
            async with self.session_factory() as session:
                row = (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {layer.value} answers for user {user_id}: {e}")
            raise StoreError(str(e)) from e

        if row is None:
            return None
        return RawPersonaAnswers(
            user_id=row.user_id,
            layer=row.layer,
            answers=row.answers,
            submitted_at=row.submitted_at,
        )


class SqlDerivationStore:
    """Derivation records in the persona_derived table, one row per user."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_derivation_record(self, user_id: str) -> Optional[DerivationRecord]:
        try:
            async with self.session_factory() as session:
                row = await session.get(PersonaDerived, user_id)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        if row is None:
            return None
        try:
            return DerivationRecord.model_validate(row.payload)
        except ValidationError as e:
            # Payloads written under an older record schema are recomputed and overwritten
            logger.warning(f"Discarding unreadable derivation record for user {user_id}: {e}")
            return None

    async def put_derivation_record(self, user_id: str, record: DerivationRecord) -> None:
        payload = record.model_dump(mode="json")
        try:
            async with self.session_factory() as session:
                row = await session.get(PersonaDerived, user_id)
                if row is None:
                    row = PersonaDerived(user_id=user_id)
                    session.add(row)
                row.fingerprint = record.fingerprint
                row.layer_fingerprints = record.layer_fingerprints
                row.derived_version = record.derived_version
                row.payload = payload
                row.derived_at = record.derived_at
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        logger.debug(f"Upserted derivation record for user {user_id}")
