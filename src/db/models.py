import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Uuid,
)
from sqlalchemy.orm import declarative_base

# Define naming conventions for constraints and indexes
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)
Base = declarative_base(metadata=metadata)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PersonaAnswerRow(Base):
    """
    One questionnaire submission. Resubmissions add a row; the latest per
    (user, layer) is the current one.
    """
    __tablename__ = "persona_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False)
    layer = Column(String(16), nullable=False)
    answers = Column(JSON, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_persona_answers_user_layer_submitted", "user_id", "layer", submitted_at.desc()),
    )


class PersonaDerived(Base):
    """Cached derivation per user, overwritten wholesale on recompute."""
    __tablename__ = "persona_derived"

    user_id = Column(String(64), primary_key=True)
    fingerprint = Column(String(64), nullable=False)
    layer_fingerprints = Column(JSON, nullable=False)
    derived_version = Column(String(32), nullable=False)
    payload = Column(JSON, nullable=False)
    derived_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
