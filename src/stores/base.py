from typing import Optional, Protocol

from services.persona_engine.definitions import PersonaLayer
from services.persona_engine.models import DerivationRecord, RawPersonaAnswers


class StoreError(Exception):
    """A questionnaire or derivation store could not complete a request."""
    pass


class QuestionnaireStore(Protocol):
    async def get_raw_answers(self, user_id: str, layer: PersonaLayer) -> Optional[RawPersonaAnswers]:
        """Latest submission for (user, layer), or None when the user has not taken it."""
        ...


class DerivationStore(Protocol):
    async def get_derivation_record(self, user_id: str) -> Optional[DerivationRecord]:
        ...

    async def put_derivation_record(self, user_id: str, record: DerivationRecord) -> None:
        """Overwrites the user's record. Raises StoreError on failure."""
        ...
