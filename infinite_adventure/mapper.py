"""Model output → typed game state.

The model is untrusted: every payload is parsed and validated here before it
can touch GameData. Out-of-range and wrong-typed values are rejected, never
coerced ("7", true and 2.0 are not integers). Only the genuinely optional
fields (discoveryTag, combatInfo) get defaults.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from infinite_adventure.models import AdventureTurn, CharacterStats

logger = logging.getLogger(__name__)


class MalformedResponse(ValueError):
    """The payload is not JSON, misses a required field, or breaks a range/enum rule."""


class InitResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    character_description: str = Field(min_length=1)
    stats: CharacterStats
    turn: AdventureTurn


class TurnResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    turn: AdventureTurn
    stats: CharacterStats = Field(alias="updatedStats")


def _decode(raw: str | dict[str, Any]) -> dict[str, Any]:
    """Decode a JSON object, stripping markdown fences the model sometimes adds."""
    if isinstance(raw, dict):
        return raw
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponse(
            f"Response must be a JSON object, got {type(data).__name__}"
        )
    return data


def _validate(model: type[BaseModel], raw: str | dict[str, Any]) -> Any:
    data = _decode(raw)
    try:
        # strict: a string or bool where an integer is expected is rejected, not converted
        return model.model_validate(data, strict=True)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.debug("rejected %s payload: %s", model.__name__, problems)
        raise MalformedResponse(f"Invalid {model.__name__}: {problems}") from e


def parse_adventure_turn(raw: str | dict[str, Any]) -> AdventureTurn:
    return _validate(AdventureTurn, raw)


def parse_init(raw: str | dict[str, Any]) -> InitResult:
    """Parse ``{characterDescription, stats, turn}``."""
    return _validate(InitResult, raw)


def parse_turn(raw: str | dict[str, Any]) -> TurnResult:
    """Parse ``{turn, updatedStats}``."""
    return _validate(TurnResult, raw)
