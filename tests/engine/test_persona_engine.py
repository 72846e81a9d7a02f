from datetime import datetime, timezone

import pytest

from services.persona_engine.definitions import PERSONA_DERIVED_VERSION, PersonaLayer
from services.persona_engine.engine import PersonaEngine, fingerprint_rows, layer_fingerprint
from services.persona_engine.models import DerivationRecord
from tests.persona_data import (
    DOMINANT_SOCIAL_SURFACE,
    EXPLORER_CARER_INNATE,
    SUPPRESSED_IMPOSED,
    answers,
    row,
)


@pytest.fixture
def rows():
    return (
        row("innate", EXPLORER_CARER_INNATE),
        row("surface", DOMINANT_SOCIAL_SURFACE),
        row("imposed", SUPPRESSED_IMPOSED),
    )


# --- Fingerprints ---

def test_fingerprint_ignores_row_order(rows):
    assert fingerprint_rows(rows) == fingerprint_rows(reversed(rows))


def test_fingerprint_ignores_answer_key_order():
    forward = row("innate", {"q1": 5, "q2": 4})
    backward = row("innate", {"q2": 4, "q1": 5})
    assert layer_fingerprint(forward) == layer_fingerprint(backward)


def test_fingerprint_changes_with_answers(rows):
    innate, surface, imposed = rows
    edited = row("innate", {**EXPLORER_CARER_INNATE, "q7": 4})
    assert fingerprint_rows((edited, surface, imposed)) != fingerprint_rows(rows)
    assert layer_fingerprint(edited) != layer_fingerprint(innate)


def test_fingerprint_changes_with_version(rows):
    assert fingerprint_rows(rows, "v1") != fingerprint_rows(rows, "v2")


def test_layer_fingerprint_depends_on_layer():
    data = answers(17)
    assert layer_fingerprint(row("innate", data)) != layer_fingerprint(row("surface", data))


# --- Derivation ---

def test_derive_builds_full_record(rows):
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    record = PersonaEngine().derive("user-1", *rows, now=now)

    assert isinstance(record, DerivationRecord)
    assert record.user_id == "user-1"
    assert record.derived_at == now
    assert record.derived_version == PERSONA_DERIVED_VERSION
    assert record.vectors.innate["Exploration"] == pytest.approx(28 / 6)
    assert record.vectors.imposed["Care"] == pytest.approx(0.2)
    assert record.imposed_breakdown["Care"].self_interest == 5
    assert len(record.flow) == 7
    assert record.jung.behavior_code == "ENFP"
    assert set(record.layer_fingerprints) == {"innate", "surface", "imposed"}
    assert record.fingerprint == fingerprint_rows(rows, config=PersonaEngine().config)
    assert record.engine_config == {"drain_threshold": 0.01, "transfer_threshold": 0.01, "strict": False}


def test_derive_is_deterministic_apart_from_timestamp(rows):
    engine = PersonaEngine()
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)
    assert engine.derive("u", *rows, now=now) == engine.derive("u", *rows, now=now)


def test_engine_thresholds_reach_flow(rows):
    loose = PersonaEngine().derive("u", *rows)
    tight = PersonaEngine(drain_threshold=100.0, transfer_threshold=100.0).derive("u", *rows)
    assert any(s.significant_drain or s.significant_transfer for s in loose.flow)
    assert not any(s.significant_drain or s.significant_transfer for s in tight.flow)


def test_engine_version_is_part_of_the_record(rows):
    record = PersonaEngine(version="test-version").derive("u", *rows)
    assert record.derived_version == "test-version"
    assert record.fingerprint == fingerprint_rows(rows, "test-version", record.engine_config)


def test_fingerprint_method_takes_layer_mapping(rows):
    engine = PersonaEngine()
    mapping = {PersonaLayer.IMPOSED: rows[2], PersonaLayer.INNATE: rows[0], PersonaLayer.SURFACE: rows[1]}
    assert engine.fingerprint(mapping) == fingerprint_rows(rows, config=engine.config)


def test_record_survives_json_round_trip(rows):
    record = PersonaEngine().derive("u", *rows)
    assert DerivationRecord.model_validate_json(record.model_dump_json()) == record


@pytest.mark.parametrize(
    "settings",
    [{"drain_threshold": 1000.0}, {"transfer_threshold": 0.5}, {"strict": True}],
)
def test_fingerprint_changes_with_engine_settings(rows, settings):
    mapping = {raw.layer: raw for raw in rows}
    assert PersonaEngine(**settings).fingerprint(mapping) != PersonaEngine().fingerprint(mapping)


def test_record_without_engine_config_still_loads(rows):
    payload = PersonaEngine().derive("u", *rows).model_dump(mode="json")
    del payload["engine_config"]
    assert DerivationRecord.model_validate(payload).engine_config == {}
