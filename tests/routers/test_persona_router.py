import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from services.persona_engine.definitions import PersonaLayer
from services.persona_engine.loader import load_profession_catalog_from_file
from services.persona_engine.models import MalformedAnswerError
from src.core.config import EngineSettings
from src.derivation.manager import DerivationManager
from src.routers import persona as persona_module
from src.routers.persona import get_derivation_manager, get_profession_catalog, router as persona_router
from src.stores.memory import InMemoryDerivationStore, InMemoryQuestionnaireStore
from tests.persona_data import DOMINANT_SOCIAL_SURFACE, EXPLORER_CARER_INNATE, SUPPRESSED_IMPOSED

# Create a FastAPI app instance and include the router for testing
app = FastAPI()
app.include_router(persona_router, prefix="/api/v1")

client = TestClient(app)

USER_ID = "user-1"
CATALOG = load_profession_catalog_from_file("assets/profession_catalog.yml")


@pytest.fixture
def manager():
    store = InMemoryQuestionnaireStore()

    async def seed():
        await store.submit_answers(USER_ID, "innate", EXPLORER_CARER_INNATE)
        await store.submit_answers(USER_ID, "surface", DOMINANT_SOCIAL_SURFACE)
        await store.submit_answers(USER_ID, "imposed", SUPPRESSED_IMPOSED)
        await store.submit_answers("half-done", "innate", EXPLORER_CARER_INNATE)

    asyncio.run(seed())
    return DerivationManager(store, InMemoryDerivationStore())


@pytest.fixture
def override(manager):
    app.dependency_overrides[get_derivation_manager] = lambda: manager
    app.dependency_overrides[get_profession_catalog] = lambda: CATALOG
    yield
    app.dependency_overrides.clear()


def failing_manager(exc: Exception) -> MagicMock:
    mock_manager = MagicMock(spec=DerivationManager)
    mock_manager.ensure_derived = AsyncMock(side_effect=exc)
    return mock_manager


# --- Derived record ---

def test_derived_recomputes_then_caches(override):
    first = client.get(f"/api/v1/persona/{USER_ID}/derived")
    assert first.status_code == 200
    body = first.json()
    assert body["status"] == "recomputed"
    assert body["reasons"] == ["missing_derived"]
    assert body["record"]["user_id"] == USER_ID

    second = client.get(f"/api/v1/persona/{USER_ID}/derived")
    assert second.json()["status"] == "cached"
    assert second.json()["record"]["fingerprint"] == body["record"]["fingerprint"]


def test_force_query_param(override):
    client.get(f"/api/v1/persona/{USER_ID}/derived")
    response = client.get(f"/api/v1/persona/{USER_ID}/derived", params={"force": "true"})
    assert response.json()["status"] == "recomputed"
    assert response.json()["reasons"] == ["forced"]


def test_missing_tests_is_a_conflict(override):
    response = client.get("/api/v1/persona/half-done/reports/jung")
    assert response.status_code == 409
    assert response.json()["detail"] == {
        "status": "missing_tests",
        "missing_layers": ["surface", "imposed"],
    }


def test_unexpected_failure_is_service_unavailable():
    app.dependency_overrides[get_derivation_manager] = lambda: failing_manager(RuntimeError("boom"))
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/drain")
    app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"] == "report temporarily unavailable"
    assert "boom" not in response.text


def test_malformed_answers_in_strict_mode_are_unprocessable():
    error = MalformedAnswerError(PersonaLayer.INNATE, {"q2": "often"})
    app.dependency_overrides[get_derivation_manager] = lambda: failing_manager(error)
    response = client.get(f"/api/v1/persona/{USER_ID}/derived")
    app.dependency_overrides.clear()

    assert response.status_code == 422
    assert "q2" in response.json()["detail"]


# --- Reports ---

def test_drain_report(override):
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/drain")
    assert response.status_code == 200
    report = response.json()["report"]
    assert [r["rank"] for r in report["rows"]] == list(range(1, 8))
    assert report["summary"]["significant_count"] >= 1


def test_jung_report(override):
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/jung")
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["behavior_code"] == "ENFP"
    assert profile["energy"]["aligned"] is False


def test_partner_report(override):
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/partner")
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert len(profile["rows"]) == 7
    assert profile["rows"][0]["display_score"] == pytest.approx(5.0)


def test_profession_fit_ranking(override):
    response = client.get(
        f"/api/v1/persona/{USER_ID}/reports/profession-fit",
        params={"weight_mode": "mixed_max", "limit": 3},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["weight_mode"] == "mixed_max"
    fits = body["professions"]
    assert len(fits) == 3
    keys = [(-f["aspired_score"], -f["job_score"], f["name"]) for f in fits]
    assert keys == sorted(keys)


@pytest.mark.parametrize("params", [{"weight_mode": "harmonic"}, {"limit": 0}, {"limit": 500}])
def test_profession_fit_rejects_bad_query(override, params):
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/profession-fit", params=params)
    assert response.status_code == 422


def test_profession_fit_without_catalog(monkeypatch, manager):
    monkeypatch.setattr(
        persona_module, "get_settings", lambda: EngineSettings(profession_catalog_path="assets/missing.yml")
    )
    app.dependency_overrides[get_derivation_manager] = lambda: manager
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/profession-fit")
    app.dependency_overrides.clear()
    assert response.status_code == 503


def test_profession_fit_with_invalid_catalog(monkeypatch, manager, tmp_path):
    broken = tmp_path / "catalog.yml"
    broken.write_text(
        "majors:\n  - name: A\n    subtypes:\n      - name: B\n        demand: {Care: 9}\n"
    )
    monkeypatch.setattr(
        persona_module, "get_settings", lambda: EngineSettings(profession_catalog_path=str(broken))
    )
    app.dependency_overrides[get_derivation_manager] = lambda: manager
    response = client.get(f"/api/v1/persona/{USER_ID}/reports/profession-fit")
    app.dependency_overrides.clear()
    assert response.status_code == 503
    assert response.json()["detail"] == "report temporarily unavailable"


def test_custom_job(override):
    response = client.post(
        f"/api/v1/persona/{USER_ID}/reports/profession-fit/custom",
        json={"name": "Community gardener", "demand": {"Care": 4, "Pleasure": 3}},
    )
    assert response.status_code == 200
    fit = response.json()["fit"]
    assert fit["major"] == "Custom"
    assert fit["demand"]["Value"] == 0.0
    assert 0.0 <= fit["job_score"] <= 5.0


def test_custom_job_requires_a_name(override):
    response = client.post(
        f"/api/v1/persona/{USER_ID}/reports/profession-fit/custom",
        json={"name": "", "demand": {"Care": 4}},
    )
    assert response.status_code == 422
