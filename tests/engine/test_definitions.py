import pytest

from services.persona_engine.definitions import (
    AXES,
    DIRECT,
    DRIVE_NAMES,
    DRIVE_QUESTION_MAP,
    INVERSE,
    QUESTION_COUNTS,
    Drive,
    PersonaLayer,
    imposed_questions,
)


def test_drive_names_follow_canonical_order():
    assert DRIVE_NAMES == [
        "Exploration", "Achievement", "Dominance", "Pleasure", "Care", "Affiliation", "Value"
    ]
    assert Drive("Care") is Drive.CARE


@pytest.mark.parametrize("alias,expected", [
    ("innate", PersonaLayer.INNATE),
    ("Surface", PersonaLayer.SURFACE),
    ("private", PersonaLayer.SURFACE),
    ("public", PersonaLayer.IMPOSED),
    (PersonaLayer.IMPOSED, PersonaLayer.IMPOSED),
])
def test_persona_layer_parse_accepts_aliases(alias, expected):
    assert PersonaLayer.parse(alias) is expected


def test_persona_layer_parse_rejects_unknown():
    with pytest.raises(ValueError):
        PersonaLayer.parse("dreams")


def test_every_drive_has_items_on_pairwise_layers():
    for layer in (PersonaLayer.INNATE, PersonaLayer.SURFACE):
        for drive in DRIVE_NAMES:
            assert DRIVE_QUESTION_MAP[layer][drive], f"{drive} has no {layer.value} items"


def test_innate_front_is_direct_and_back_is_inverse():
    items = DRIVE_QUESTION_MAP[PersonaLayer.INNATE]
    # q1 = exploration-achievement
    assert (1, DIRECT) in items["Exploration"]
    assert (1, INVERSE) in items["Achievement"]


def test_surface_front_is_inverse_and_back_is_direct():
    items = DRIVE_QUESTION_MAP[PersonaLayer.SURFACE]
    # q7 = care-achievement
    assert (7, INVERSE) in items["Care"]
    assert (7, DIRECT) in items["Achievement"]


def test_private_public_self_pairs_count_once():
    items = DRIVE_QUESTION_MAP[PersonaLayer.SURFACE]
    assert [(q, p) for q, p in items["Dominance"] if q == 18] == [(18, INVERSE)]
    assert [(q, p) for q, p in items["Affiliation"] if q == 19] == [(19, INVERSE)]
    assert [(q, p) for q, p in items["Pleasure"] if q == 20] == [(20, INVERSE)]


def test_every_question_is_used_on_pairwise_layers():
    for layer in (PersonaLayer.INNATE, PersonaLayer.SURFACE):
        used = {q for items in DRIVE_QUESTION_MAP[layer].values() for q, _ in items}
        assert used == set(range(1, QUESTION_COUNTS[layer] + 1))


def test_imposed_questions_are_grouped_by_drive():
    assert imposed_questions(0) == (1, 2, 3)
    assert imposed_questions(6) == (19, 20, 21)
    assert QUESTION_COUNTS[PersonaLayer.IMPOSED] == 21


def test_axes_have_two_to_five_groups_per_layer():
    for spec in AXES.values():
        assert set(spec.groups) == {PersonaLayer.INNATE, PersonaLayer.SURFACE}
        for groups in spec.groups.values():
            assert 2 <= len(groups) <= 5
            assert {g.pole for g in groups} == set(spec.poles)
