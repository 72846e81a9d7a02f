import logging
from typing import Optional

from services.persona_engine.engine import PersonaEngine
from src.core.config import EngineSettings, get_settings
from src.derivation.manager import DerivationManager
from src.stores.memory import InMemoryDerivationStore, InMemoryQuestionnaireStore

logger = logging.getLogger(__name__)

_manager: Optional[DerivationManager] = None


def build_engine(settings: EngineSettings) -> PersonaEngine:
    return PersonaEngine(
        drain_threshold=settings.drain_significance,
        transfer_threshold=settings.transfer_significance,
        strict=settings.strict_answers,
    )


def build_manager(settings: Optional[EngineSettings] = None) -> DerivationManager:
    """
    Wires the derivation manager for the configured backend.

    Questionnaire rows live in SQL for the sql and redis backends; the redis
    backend only moves derivation records to Redis.
    """
    settings = settings or get_settings()
    engine = build_engine(settings)

    if settings.derivation_backend == "memory":
        logger.info("Using in-memory persona stores")
        return DerivationManager(InMemoryQuestionnaireStore(), InMemoryDerivationStore(), engine)

    from src.db.session import get_default_session_factory
    from src.stores.sql import SqlDerivationStore, SqlQuestionnaireStore

    session_factory = get_default_session_factory()
    questionnaires = SqlQuestionnaireStore(session_factory)

    if settings.derivation_backend == "redis":
        from src.stores.redis_store import RedisDerivationStore

        logger.info("Using Redis derivation store")
        return DerivationManager(
            questionnaires,
            RedisDerivationStore(ttl_seconds=settings.derivation_ttl_seconds),
            engine,
        )

    logger.info("Using SQL derivation store")
    return DerivationManager(questionnaires, SqlDerivationStore(session_factory), engine)


def get_manager() -> DerivationManager:
    global _manager
    if _manager is None:
        _manager = build_manager()
    return _manager


def reset_manager() -> None:
    global _manager
    _manager = None
