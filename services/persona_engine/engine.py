import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .axes import classify_profile
from .definitions import (
    DEFAULT_DRAIN_SIGNIFICANCE,
    DEFAULT_TRANSFER_SIGNIFICANCE,
    PERSONA_DERIVED_VERSION,
    PersonaLayer,
)
from .flow import compute_flow
from .models import DerivationRecord, RawPersonaAnswers
from .vectors import compute_persona_vectors, imposed_breakdown

logger = logging.getLogger(__name__)


def _canonical(payload) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def layer_fingerprint(raw: RawPersonaAnswers) -> str:
    """Content hash of a single questionnaire row's answers."""
    body = {"layer": raw.layer.value, "answers": raw.answers}
    return hashlib.sha256(_canonical(body).encode("utf-8")).hexdigest()


def fingerprint_rows(
    rows: Iterable[RawPersonaAnswers],
    version: str = PERSONA_DERIVED_VERSION,
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Content fingerprint of the three persona rows plus the engine version and
    the engine settings that shape the record.

    Row order does not matter; answers are hashed in canonical JSON so key
    order of the submitted mapping does not either.
    """
    ordered = sorted(rows, key=lambda r: r.layer.value)
    body = {
        "version": version,
        "config": config or {},
        "rows": [{"layer": r.layer.value, "answers": r.answers} for r in ordered],
    }
    return hashlib.sha256(_canonical(body).encode("utf-8")).hexdigest()


class PersonaEngine:
    """
    Pure derivation pipeline: three questionnaire rows in, one DerivationRecord out.

    Holds only configuration (significance thresholds and strictness); every
    call is deterministic apart from the ``derived_at`` timestamp.
    """

    def __init__(
        self,
        drain_threshold: float = DEFAULT_DRAIN_SIGNIFICANCE,
        transfer_threshold: float = DEFAULT_TRANSFER_SIGNIFICANCE,
        strict: bool = False,
        version: str = PERSONA_DERIVED_VERSION,
    ):
        self.drain_threshold = drain_threshold
        self.transfer_threshold = transfer_threshold
        self.strict = strict
        self.version = version

    @property
    def config(self) -> Dict[str, Any]:
        """Settings that change the derived record, stored alongside it."""
        return {
            "drain_threshold": self.drain_threshold,
            "transfer_threshold": self.transfer_threshold,
            "strict": self.strict,
        }

    def fingerprint(self, rows: Dict[PersonaLayer, RawPersonaAnswers]) -> str:
        return fingerprint_rows(rows.values(), self.version, self.config)

    def derive(
        self,
        user_id: str,
        innate: RawPersonaAnswers,
        surface: RawPersonaAnswers,
        imposed: RawPersonaAnswers,
        now: Optional[datetime] = None,
    ) -> DerivationRecord:
        """
        Computes vectors, flow and Jung profile for one user.

        Args:
            user_id: Owner of the rows.
            innate: Innate questionnaire row.
            surface: Surface (private) questionnaire row.
            imposed: Imposed (public) questionnaire row.
            now: Timestamp override for ``derived_at``.

        Returns:
            A DerivationRecord fingerprinted against the three rows.
        """
        vectors = compute_persona_vectors(innate, surface, imposed, strict=self.strict)
        flow = compute_flow(vectors, self.drain_threshold, self.transfer_threshold)
        jung = classify_profile(innate, surface)
        rows = {
            PersonaLayer.INNATE: innate,
            PersonaLayer.SURFACE: surface,
            PersonaLayer.IMPOSED: imposed,
        }
        record = DerivationRecord(
            user_id=user_id,
            vectors=vectors,
            imposed_breakdown=imposed_breakdown(imposed),
            flow=flow,
            jung=jung,
            fingerprint=self.fingerprint(rows),
            layer_fingerprints={layer.value: layer_fingerprint(raw) for layer, raw in rows.items()},
            derived_version=self.version,
            engine_config=self.config,
            derived_at=now or datetime.now(timezone.utc),
        )
        logger.info(f"Derived persona record for user {user_id} (fingerprint {record.fingerprint[:12]})")
        return record
