import pytest

from src.core.config import get_settings
from src.derivation.factory import reset_manager


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """
    Every test starts from default settings on the in-memory backend and a
    fresh derivation manager singleton.
    """
    monkeypatch.setenv("PERSONA_DERIVATION_BACKEND", "memory")
    get_settings.cache_clear()
    reset_manager()
    yield
    get_settings.cache_clear()
    reset_manager()
