"""Tests for infinite_adventure.mapper — parsing and rejecting model payloads."""

import json

import pytest

from infinite_adventure.mapper import (
    MalformedResponse,
    parse_adventure_turn,
    parse_init,
    parse_turn,
)
from infinite_adventure.models import AdventureTurn
from stubs import combat_payload, init_payload, next_payload, stats_payload, turn_payload


class TestParseAdventureTurn:
    def test_accepts_minimal_payload_unchanged(self) -> None:
        raw = turn_payload()
        turn = parse_adventure_turn(json.dumps(raw, ensure_ascii=False))
        assert turn.model_dump(by_alias=True, exclude_none=True) == raw

    def test_accepts_decoded_dict(self) -> None:
        assert isinstance(parse_adventure_turn(turn_payload()), AdventureTurn)

    def test_strips_markdown_fences(self) -> None:
        raw = "```json\n" + json.dumps(turn_payload()) + "\n```"
        assert parse_adventure_turn(raw).location_type == "neutral"

    def test_threat_level_15_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="threatLevel"):
            parse_adventure_turn(turn_payload(threatLevel=15))

    def test_unknown_location_type_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="locationType"):
            parse_adventure_turn(turn_payload(locationType="unknown"))

    def test_missing_required_field_rejected(self) -> None:
        raw = turn_payload()
        del raw["imagePrompt"]
        with pytest.raises(MalformedResponse, match="imagePrompt"):
            parse_adventure_turn(raw)

    def test_not_json(self) -> None:
        with pytest.raises(MalformedResponse, match="not valid JSON"):
            parse_adventure_turn("The hero walks on.")

    def test_json_array_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="JSON object"):
            parse_adventure_turn("[1, 2]")

    def test_optional_fields_default(self) -> None:
        turn = parse_adventure_turn(turn_payload())
        assert turn.discovery_tag is None
        assert turn.combat_info is None

    def test_enemy_hp_above_max_rejected(self) -> None:
        raw = turn_payload(
            locationType="threat", combatInfo=combat_payload(enemyHp=99, enemyMaxHp=10)
        )
        with pytest.raises(MalformedResponse):
            parse_adventure_turn(raw)


class TestParseInit:
    def test_full_payload(self) -> None:
        result = parse_init(init_payload())
        assert result.character_description.startswith("Наёмник")
        assert result.stats.strength == 12
        assert result.turn.current_quest == "Добраться до замка"

    def test_missing_stats(self) -> None:
        raw = init_payload()
        del raw["stats"]
        with pytest.raises(MalformedResponse, match="stats"):
            parse_init(raw)

    def test_negative_max_hp(self) -> None:
        with pytest.raises(MalformedResponse, match="maxHp"):
            parse_init(init_payload(stats=stats_payload(maxHp=-5)))


class TestParseTurn:
    def test_full_payload(self) -> None:
        result = parse_turn(next_payload(stats=stats_payload(hp=70)))
        assert result.stats.hp == 70

    def test_negative_hp_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="hp"):
            parse_turn(next_payload(stats=stats_payload(hp=-3)))

    def test_hp_above_max_is_not_mappers_concern(self) -> None:
        result = parse_turn(next_payload(stats=stats_payload(hp=150, maxHp=100)))
        assert result.stats.hp == 150

    def test_missing_updated_stats(self) -> None:
        with pytest.raises(MalformedResponse, match="updatedStats"):
            parse_turn({"turn": turn_payload()})

    def test_float_threat_level_not_truncated(self) -> None:
        with pytest.raises(MalformedResponse):
            parse_turn(next_payload(turn=turn_payload(threatLevel=3.5)))


class TestWrongTypes:
    """Integers must arrive as JSON integers; nothing is converted."""

    @pytest.mark.parametrize("value", ["7", True, 7.0], ids=["string", "bool", "float"])
    def test_threat_level_not_converted(self, value) -> None:
        with pytest.raises(MalformedResponse, match="threatLevel"):
            parse_turn(next_payload(turn=turn_payload(threatLevel=value)))

    def test_string_hp_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="hp"):
            parse_turn(next_payload(stats=stats_payload(hp="40")))

    def test_bool_and_float_stats_rejected(self) -> None:
        with pytest.raises(MalformedResponse) as info:
            parse_turn(next_payload(stats=stats_payload(hp=True, maxHp=2.0)))
        assert "updatedStats.hp" in str(info.value)
        assert "updatedStats.maxHp" in str(info.value)

    def test_string_enemy_hp_rejected(self) -> None:
        raw = turn_payload(locationType="threat", combatInfo=combat_payload(enemyHp="30"))
        with pytest.raises(MalformedResponse, match="enemyHp"):
            parse_adventure_turn(raw)

    def test_json_text_with_string_number_rejected(self) -> None:
        raw = json.dumps(init_payload(stats=stats_payload(level="2")), ensure_ascii=False)
        with pytest.raises(MalformedResponse, match="level"):
            parse_init(raw)

    def test_blank_choice_rejected(self) -> None:
        with pytest.raises(MalformedResponse, match="choices"):
            parse_turn(next_payload(turn=turn_payload(choices=["Идти", "   "])))
