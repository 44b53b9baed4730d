"""Core domain models.

Every remote payload, saved game and orchestrator state snapshot is one of
these types. Pydantic is used for validation and serialisation at every data
boundary.

Python attributes are snake_case; the wire and save format uses the camelCase
names the generative model is asked to produce (``locationName``, ``maxHp``,
...). Both spellings validate.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

LocationType = Literal["threat", "poi", "neutral"]

LOCATION_TYPES: tuple[str, ...] = ("threat", "poi", "neutral")

# Offered on the start screen; any other non-blank genre is accepted too.
GENRES: tuple[str, ...] = (
    "Темное фэнтези",
    "Киберпанк детектив",
    "Галактическая космоопера",
    "Готические ужасы",
)

MIN_THREAT_LEVEL = 0
MAX_THREAT_LEVEL = 10


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GameState(str, Enum):
    START = "START"
    SETUP = "SETUP"
    LOADING = "LOADING"
    PLAYING = "PLAYING"
    COMBAT = "COMBAT"
    GAMEOVER = "GAMEOVER"
    ERROR = "ERROR"


class CharacterStats(_Model):
    """The hero's sheet. ``hp <= max_hp`` is enforced by the orchestrator."""

    hp: int = Field(100, ge=0)
    max_hp: int = Field(100, ge=0)
    strength: int = Field(10, ge=0, alias="str")
    agility: int = Field(10, ge=0, alias="agi")
    intellect: int = Field(10, ge=0, alias="int")
    level: int = Field(1, ge=0)
    exp: int = Field(0, ge=0)

    def clamped(self) -> CharacterStats:
        """Return a copy with hp forced into [0, max_hp]."""
        hp = max(0, min(self.hp, self.max_hp))
        if hp == self.hp:
            return self
        return self.model_copy(update={"hp": hp})

    def healed(self) -> CharacterStats:
        return self.model_copy(update={"hp": self.max_hp})


class CombatInfo(_Model):
    """Enemy snapshot, present only while the hero stands in a threat location."""

    enemy_name: str
    enemy_hp: int = Field(ge=0)
    enemy_max_hp: int = Field(ge=0)
    last_action_log: str = ""

    @model_validator(mode="after")
    def _enemy_hp_within_max(self) -> CombatInfo:
        if self.enemy_hp > self.enemy_max_hp:
            raise ValueError(
                f"enemyHp {self.enemy_hp} exceeds enemyMaxHp {self.enemy_max_hp}"
            )
        return self


class AdventureTurn(_Model):
    """One generated narrative beat. Immutable once produced."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    location_name: str
    location_type: LocationType
    threat_level: int = Field(ge=MIN_THREAT_LEVEL, le=MAX_THREAT_LEVEL)
    discovery_tag: str | None = None
    story: str
    choices: list[str] = Field(min_length=1)
    inventory: list[str]
    current_quest: str
    image_prompt: str
    combat_info: CombatInfo | None = None

    @field_validator("story")
    @classmethod
    def _story_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("story must not be empty")
        return value

    @field_validator("choices")
    @classmethod
    def _choices_not_blank(cls, value: list[str]) -> list[str]:
        if any(not choice.strip() for choice in value):
            raise ValueError("choices must not contain empty entries")
        return value

    @property
    def is_threat(self) -> bool:
        return self.location_type == "threat"


class GameData(_Model):
    """Aggregate root, owned by the orchestrator. The UI only reads it."""

    history: list[AdventureTurn] = Field(default_factory=list)
    current_turn: AdventureTurn | None = None
    genre: str = ""
    character_description: str = ""
    current_image: str | None = None  # data URL
    stats: CharacterStats = Field(default_factory=CharacterStats)


class ChatMessage(_Model):
    """A single entry in the oracle's append-only chat log."""

    role: Literal["user", "model"]
    text: str


class WorldCustomization(_Model):
    """Optional player-authored seeds for a new world. Blank means unspecified."""

    world: str = ""
    hero: str = ""
    weapon: str = ""
    villain: str = ""


class SaveGame(_Model):
    """The blob written to the save slot."""

    game_data: GameData
    chat_messages: list[ChatMessage] = Field(default_factory=list)
