"""Request builders for every game event.

Each builder is a pure function from game state to a GenerationRequest: the
instruction text the model reads plus the response schema it must follow.
Prompts are written in Russian, the game's only narrative language; image
descriptors are requested in English.

Schemas use the generative endpoint's schema dialect (OBJECT / STRING /
INTEGER / ARRAY, ``enum``, ``required``). Every field the mapper requires is
listed in the matching schema's ``required`` list.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from infinite_adventure.models import (
    LOCATION_TYPES,
    AdventureTurn,
    CharacterStats,
    WorldCustomization,
)

HISTORY_WINDOW = 3
ORACLE_WINDOW = 2
STORY_EXCERPT_CHARS = 400
ORACLE_EXCERPT_CHARS = 600

UNSPECIFIED = "не указано — на усмотрение рассказчика"

ORACLE_SYSTEM_INSTRUCTION = "Ты — мудрый Оракул. Отвечай кратко на русском."


class GenerationRequest(BaseModel):
    """Everything needed for one call to the generative endpoint."""

    stage: str
    prompt: str
    response_schema: dict[str, Any] | None = None
    system_instruction: str | None = None


class PromptError(ValueError):
    """Raised when a request cannot be built from the given state."""


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

_STRING = {"type": "STRING"}
_INTEGER = {"type": "INTEGER"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

STATS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "hp": _INTEGER,
        "maxHp": _INTEGER,
        "str": _INTEGER,
        "agi": _INTEGER,
        "int": _INTEGER,
        "level": _INTEGER,
        "exp": _INTEGER,
    },
    "required": ["hp", "maxHp", "str", "agi", "int", "level", "exp"],
}

COMBAT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "enemyName": _STRING,
        "enemyHp": _INTEGER,
        "enemyMaxHp": _INTEGER,
        "lastActionLog": _STRING,
    },
    "required": ["enemyName", "enemyHp", "enemyMaxHp", "lastActionLog"],
}

TURN_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "locationName": _STRING,
        "locationType": {"type": "STRING", "enum": list(LOCATION_TYPES)},
        "threatLevel": _INTEGER,
        "discoveryTag": _STRING,
        "story": _STRING,
        "choices": _STRING_LIST,
        "inventory": _STRING_LIST,
        "currentQuest": _STRING,
        "imagePrompt": _STRING,
        "combatInfo": COMBAT_SCHEMA,
    },
    "required": [
        "locationName",
        "locationType",
        "threatLevel",
        "story",
        "choices",
        "inventory",
        "currentQuest",
        "imagePrompt",
    ],
}

INIT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "characterDescription": _STRING,
        "stats": STATS_SCHEMA,
        "turn": TURN_SCHEMA,
    },
    "required": ["characterDescription", "stats", "turn"],
}

NEXT_TURN_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "turn": TURN_SCHEMA,
        "updatedStats": STATS_SCHEMA,
    },
    "required": ["turn", "updatedStats"],
}


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def truncate(text: str, limit: int = STORY_EXCERPT_CHARS) -> str:
    """Cut text to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def _or_unspecified(value: str) -> str:
    return value.strip() or UNSPECIFIED


def _format_stats(stats: CharacterStats) -> str:
    return (
        f"HP {stats.hp}/{stats.max_hp}, СИЛ {stats.strength}, ЛОВ {stats.agility}, "
        f"ИНТ {stats.intellect}, уровень {stats.level}, опыт {stats.exp}"
    )


def _format_history(history: list[AdventureTurn], window: int, limit: int) -> str:
    return "\n\n".join(
        f"Место: {turn.location_name}\nСобытие: {truncate(turn.story, limit)}"
        for turn in history[-window:]
    )


_TURN_FIELDS_HELP = (
    "- locationName: очень краткое название места (2-3 слова)\n"
    "- locationType: одно из threat (опасность, бой), poi (место интереса), neutral\n"
    "- threatLevel: целое число от 0 до 10\n"
    "- discoveryTag: необязательная метка находки\n"
    "- story: текст продолжения (на русском)\n"
    "- choices: 3 варианта действий (на русском)\n"
    "- inventory: полный список предметов героя\n"
    "- currentQuest: текущая цель\n"
    "- imagePrompt: описание сцены на английском (10-15 слов)\n"
    "- combatInfo: только если locationType = threat: enemyName, enemyHp, "
    "enemyMaxHp, lastActionLog (enemyHp не больше enemyMaxHp)"
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_init_request(
    genre: str, customization: WorldCustomization | None = None
) -> GenerationRequest:
    """Character creation plus the opening turn."""
    if not genre.strip():
        raise PromptError("Genre must not be empty")
    custom = customization or WorldCustomization()

    prompt = (
        f'Начни игру в жанре "{genre}". Создай героя, его характеристики и первый ход.\n\n'
        "Пожелания игрока:\n"
        f"- Мир: {_or_unspecified(custom.world)}\n"
        f"- Герой: {_or_unspecified(custom.hero)}\n"
        f"- Оружие: {_or_unspecified(custom.weapon)}\n"
        f"- Злодей: {_or_unspecified(custom.villain)}\n\n"
        "ЗАДАЧА: Сгенерируй JSON с полями:\n"
        "- characterDescription: краткое описание героя (на русском)\n"
        "- stats: hp, maxHp, str, agi, int, level, exp (неотрицательные целые, hp = maxHp)\n"
        "- turn: первый ход с полями:\n"
        f"{_TURN_FIELDS_HELP}"
    )
    return GenerationRequest(stage="init", prompt=prompt, response_schema=INIT_SCHEMA)


def build_turn_request(
    genre: str,
    history: list[AdventureTurn],
    action: str,
    character_description: str,
    stats: CharacterStats,
    is_combat: bool,
) -> GenerationRequest:
    """Continuation of the story after the player's action."""
    if not action.strip():
        raise PromptError("Player action must not be empty")

    context = _format_history(history, HISTORY_WINDOW, STORY_EXCERPT_CHARS)
    inventory = ", ".join(history[-1].inventory) if history else ""

    parts = [
        f'Продолжи приключение в жанре "{genre}".',
        f"Персонаж: {character_description}.",
        f"Характеристики: {_format_stats(stats)}.",
        f"Инвентарь: {inventory or 'пусто'}.",
        f"Предыдущие события:\n{context}" if context else "",
        f'Игрок выбрал: "{action.strip()}".',
    ]
    if is_combat:
        parts.append(
            "ИДЁТ БОЙ. Разреши действие игрока как ход в сражении: обнови здоровье "
            "героя и врага, опиши удары в combatInfo.lastActionLog. Если hp героя "
            "падает до 0, герой погибает."
        )
    parts.append(
        "ЗАДАЧА: Сгенерируй JSON с полями:\n"
        f"- turn: следующий ход с полями:\n{_TURN_FIELDS_HELP}\n"
        "- updatedStats: характеристики героя после хода "
        "(hp, maxHp, str, agi, int, level, exp; неотрицательные целые)"
    )
    prompt = "\n\n".join(p for p in parts if p)
    return GenerationRequest(stage="turn", prompt=prompt, response_schema=NEXT_TURN_SCHEMA)


def build_oracle_request(question: str, history: list[AdventureTurn]) -> GenerationRequest:
    """Free-text advice about the world. Shorter context, no schema."""
    if not question.strip():
        raise PromptError("Question must not be empty")
    context = "\n".join(
        truncate(turn.story, ORACLE_EXCERPT_CHARS) for turn in history[-ORACLE_WINDOW:]
    )
    prompt = f"Контекст:\n{context}\n\nВопрос к Оракулу: {question.strip()}"
    return GenerationRequest(
        stage="oracle", prompt=prompt, system_instruction=ORACLE_SYSTEM_INSTRUCTION
    )
