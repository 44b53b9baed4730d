"""Tests for request building: prompt content, truncation, and schema coverage."""

import pytest

from infinite_adventure.mapper import InitResult, TurnResult
from infinite_adventure.models import (
    AdventureTurn,
    CharacterStats,
    CombatInfo,
    WorldCustomization,
)
from infinite_adventure.prompts import (
    COMBAT_SCHEMA,
    INIT_SCHEMA,
    NEXT_TURN_SCHEMA,
    STATS_SCHEMA,
    TURN_SCHEMA,
    UNSPECIFIED,
    PromptError,
    build_init_request,
    build_oracle_request,
    build_turn_request,
    truncate,
)
from stubs import turn_payload


def _turn(i: int, story: str | None = None) -> AdventureTurn:
    return AdventureTurn.model_validate(
        turn_payload(locationName=f"Место {i}", story=story or f"История номер {i}.")
    )


def _required_aliases(model) -> set[str]:
    return {
        field.alias or name
        for name, field in model.model_fields.items()
        if field.is_required()
    }


# ── truncate ─────────────────────────────────────────────────


def test_truncate_short_text_untouched():
    assert truncate("abc", 10) == "abc"


def test_truncate_long_text():
    assert truncate("a" * 20, 5) == "aaaaa..."


# ── schema coverage ──────────────────────────────────────────


@pytest.mark.parametrize("schema, model", [
    (TURN_SCHEMA, AdventureTurn),
    (STATS_SCHEMA, CharacterStats),
    (COMBAT_SCHEMA, CombatInfo),
    (INIT_SCHEMA, InitResult),
    (NEXT_TURN_SCHEMA, TurnResult),
])
def test_schema_requires_every_field_the_mapper_requires(schema, model):
    assert _required_aliases(model) <= set(schema["required"])
    assert set(schema["required"]) <= set(schema["properties"])


def test_location_type_enum():
    assert TURN_SCHEMA["properties"]["locationType"]["enum"] == ["threat", "poi", "neutral"]


# ── init ─────────────────────────────────────────────────────


def test_init_request_defaults_customization():
    req = build_init_request("Темное фэнтези")
    assert req.stage == "init"
    assert req.response_schema is INIT_SCHEMA
    assert '"Темное фэнтези"' in req.prompt
    assert req.prompt.count(UNSPECIFIED) == 4


def test_init_request_uses_customization_independently():
    custom = WorldCustomization(world="Город в облаках", villain="Древний бог")
    req = build_init_request("Киберпанк детектив", custom)
    assert "Город в облаках" in req.prompt
    assert "Древний бог" in req.prompt
    assert req.prompt.count(UNSPECIFIED) == 2


def test_init_request_blank_genre():
    with pytest.raises(PromptError):
        build_init_request("  ")


# ── turn ─────────────────────────────────────────────────────


def test_turn_request_window_is_last_three_turns():
    history = [_turn(i) for i in range(1, 6)]
    req = build_turn_request(
        "Готические ужасы", history, "Открыть дверь", "Вампир", CharacterStats(), False
    )
    assert "Место 1" not in req.prompt
    assert "Место 2" not in req.prompt
    for i in (3, 4, 5):
        assert f"Место {i}" in req.prompt
    assert 'Игрок выбрал: "Открыть дверь"' in req.prompt
    assert req.response_schema is NEXT_TURN_SCHEMA


def test_turn_request_truncates_story():
    history = [_turn(1, story="ж" * 1000)]
    req = build_turn_request("g", history, "go", "hero", CharacterStats(), False)
    assert "ж" * 400 + "..." in req.prompt
    assert "ж" * 401 not in req.prompt


def test_turn_request_embeds_stats_and_inventory():
    history = [_turn(1)]
    stats = CharacterStats(hp=42, max_hp=90, strength=14)
    req = build_turn_request("g", history, "go", "hero", stats, False)
    assert "HP 42/90" in req.prompt
    assert "СИЛ 14" in req.prompt
    assert "Меч, Фляга" in req.prompt


def test_turn_request_combat_block():
    history = [_turn(1)]
    calm = build_turn_request("g", history, "bite", "hero", CharacterStats(), False)
    fight = build_turn_request("g", history, "bite", "hero", CharacterStats(), True)
    assert "ИДЁТ БОЙ" not in calm.prompt
    assert "ИДЁТ БОЙ" in fight.prompt


def test_turn_request_blank_action():
    with pytest.raises(PromptError):
        build_turn_request("g", [], "   ", "hero", CharacterStats(), False)


# ── oracle ───────────────────────────────────────────────────


def test_oracle_request_shorter_window():
    history = [_turn(i) for i in range(1, 5)]
    req = build_oracle_request("Кто правит городом?", history)
    assert req.response_schema is None
    assert req.system_instruction and "Оракул" in req.system_instruction
    assert "История номер 2." not in req.prompt
    assert "История номер 3." in req.prompt
    assert "История номер 4." in req.prompt
    assert req.prompt.endswith("Вопрос к Оракулу: Кто правит городом?")
