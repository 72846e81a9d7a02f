import json
import logging

from src.core.config import EngineSettings, get_settings
from src.core.logging_config import CustomJsonFormatter, setup_logging
from src.derivation.factory import build_engine, build_manager, get_manager
from src.stores.memory import InMemoryDerivationStore


# --- Settings ---

def test_defaults(monkeypatch):
    monkeypatch.delenv("PERSONA_DERIVATION_BACKEND", raising=False)
    settings = EngineSettings()
    assert settings.drain_significance == 0.01
    assert settings.transfer_significance == 0.01
    assert settings.strict_answers is False
    assert settings.derivation_backend == "sql"
    assert settings.derivation_ttl_seconds is None


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("PERSONA_DRAIN_SIGNIFICANCE", "0.25")
    monkeypatch.setenv("PERSONA_STRICT_ANSWERS", "true")
    monkeypatch.setenv("PERSONA_DERIVATION_TTL_SECONDS", "3600")
    settings = get_settings()
    assert settings.drain_significance == 0.25
    assert settings.strict_answers is True
    assert settings.derivation_ttl_seconds == 3600
    assert get_settings() is settings


def test_engine_follows_settings():
    engine = build_engine(EngineSettings(drain_significance=0.5, transfer_significance=0.2, strict_answers=True))
    assert engine.drain_threshold == 0.5
    assert engine.transfer_threshold == 0.2
    assert engine.strict is True


def test_memory_backend_manager():
    manager = build_manager(EngineSettings(derivation_backend="memory"))
    assert isinstance(manager.derivations, InMemoryDerivationStore)
    assert get_manager() is get_manager()


# --- Logging ---

def test_json_formatter_adds_user_id():
    formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
    record = logging.LogRecord("persona", logging.INFO, __file__, 10, "derived", None, None)
    record.user_id = "user-9"
    payload = json.loads(formatter.format(record))
    assert payload["user_id"] == "user-9"
    assert payload["level"] == "INFO"
    assert payload["message"] == "derived"
    assert payload["lineno"] == 10


def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    setup_logging("DEBUG")
    setup_logging("WARNING")
    handlers = [h for h in root.handlers if isinstance(h.formatter, CustomJsonFormatter)]
    assert len(handlers) == 1
    assert root.level == logging.WARNING
