import pytest

from services.persona_engine.definitions import DRIVE_NAMES
from services.persona_engine.models import PersonaVectors
from services.persona_engine.partner import (
    build_partner_demand,
    cap_partner_demand,
    ideal_partner_profile,
)


def vec(default: float = 0.0, **values) -> dict:
    out = {d: default for d in DRIVE_NAMES}
    out.update(values)
    return out


@pytest.fixture
def strong_self():
    """Innately exploring, caring and principled; dominant on the surface."""
    return PersonaVectors(
        innate=vec(Exploration=5.0, Care=5.0, Value=5.0),
        surface=vec(Dominance=5.0),
        imposed=vec(3.0),
    )


# --- Demand ---

def test_flat_self_demands_evenly():
    flat = PersonaVectors(innate=vec(3.0), surface=vec(3.0), imposed=vec(3.0))
    assert build_partner_demand(flat) == pytest.approx(vec(1.8))


def test_demand_blocks_take_the_maximum(strong_self):
    demand = build_partner_demand(strong_self)
    assert demand == pytest.approx({
        "Exploration": 5.0,
        "Achievement": 5.0,
        # exploration block asks for 6 - surface exploration
        "Dominance": 6.0,
        "Pleasure": 0.0,
        "Care": 5.0,
        "Affiliation": 5.0,
        "Value": 5.0,
    })


def test_negative_gap_terms_are_floored():
    vectors = PersonaVectors(
        innate=vec(Exploration=5.0),
        surface=vec(Achievement=5.0),
        imposed=vec(),
    )
    demand = build_partner_demand(vectors)
    assert all(v >= 0.0 for v in demand.values())
    # the -5 exploration gap loses to the achievement block's complement term
    assert demand["Achievement"] == pytest.approx(1.0)
    assert demand["Dominance"] == pytest.approx(6.0)


def test_demand_weakens_with_self_drive():
    weak = PersonaVectors(innate=vec(Care=1.0), surface=vec(), imposed=vec())
    strong = PersonaVectors(innate=vec(Care=5.0), surface=vec(), imposed=vec())
    assert build_partner_demand(weak)["Care"] == pytest.approx(0.2)
    assert build_partner_demand(strong)["Care"] == pytest.approx(5.0)


# --- Capping ---

def test_cap_is_minimum_over_components():
    vectors = PersonaVectors(innate=vec(Value=2.0, Exploration=4.0), surface=vec(), imposed=vec())
    result = cap_partner_demand({"Value": 4.0}, vectors)
    meta = result.cap_meta["Value"]
    assert meta.cap == pytest.approx(2.0)
    assert meta.is_capped
    assert meta.binding == ["innate_exploration"]
    assert result.capped_demand["Value"] == pytest.approx(2.0)
    assert {c.id: c.cap for c in meta.components} == pytest.approx(
        {"innate_value": 4.0, "innate_exploration": 2.0}
    )


def test_uncapped_drives_pass_through():
    vectors = PersonaVectors(innate=vec(), surface=vec(), imposed=vec())
    result = cap_partner_demand({"Care": 4.5}, vectors)
    assert result.capped_demand["Care"] == 4.5
    assert result.cap_meta["Care"].cap is None
    assert not result.cap_meta["Care"].is_capped
    assert result.capped_demand["Pleasure"] == 0.0


def test_cap_clamps_self_values():
    vectors = PersonaVectors(innate=vec(Value=7.0, Exploration=-1.0), surface=vec(), imposed=vec())
    meta = cap_partner_demand({"Value": 3.0}, vectors).cap_meta["Value"]
    assert meta.cap == pytest.approx(1.0)
    assert meta.binding == ["innate_value"]
    # 6 - 0 is held to the top of the scale
    assert {c.id: c.cap for c in meta.components}["innate_exploration"] == pytest.approx(5.0)


def test_demand_at_cap_is_not_flagged():
    vectors = PersonaVectors(innate=vec(Value=4.0), surface=vec(Dominance=4.0), imposed=vec())
    result = cap_partner_demand({"Value": 2.0 + 1e-12, "Dominance": 2.0}, vectors)
    assert not result.cap_meta["Value"].is_capped
    assert not result.cap_meta["Dominance"].is_capped
    assert sorted(result.cap_meta["Value"].binding) == ["innate_value"]


def test_capped_never_exceeds_raw_or_cap(strong_self):
    raw = build_partner_demand(strong_self)
    result = cap_partner_demand(raw, strong_self)
    for drive in DRIVE_NAMES:
        meta = result.cap_meta[drive]
        assert result.capped_demand[drive] <= raw[drive]
        if meta.cap is not None:
            assert result.capped_demand[drive] <= meta.cap


# --- Profile ---

def test_ideal_partner_profile(strong_self):
    profile = ideal_partner_profile(strong_self)
    assert profile.ideal["Dominance"] == pytest.approx(1.0)
    assert profile.ideal["Value"] == pytest.approx(1.0)
    assert profile.capped.cap_meta["Dominance"].is_capped
    assert sorted(profile.capped.cap_meta["Dominance"].binding) == ["innate_exploration", "surface_dominance"]

    assert [r.drive for r in profile.rows] == [
        "Exploration", "Achievement", "Care", "Affiliation", "Dominance", "Value", "Pleasure"
    ]
    assert [r.rank for r in profile.rows] == list(range(1, 8))
    assert profile.rows[0].display_score == pytest.approx(5.0)
    assert profile.rows[4].display_score == pytest.approx(1.0)
    assert profile.rows[4].is_capped
    assert profile.top_drive == "Exploration"


def test_empty_self_has_no_top_drive():
    profile = ideal_partner_profile(PersonaVectors(innate=vec(), surface=vec(), imposed=vec()))
    assert profile.top_drive is None
    assert all(r.display_score == 0.0 for r in profile.rows)
    assert [r.drive for r in profile.rows] == DRIVE_NAMES
