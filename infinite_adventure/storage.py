"""Save slot on disk.

A single JSON file under a configurable base directory holds the whole game
(GameData plus the oracle chat log). There is no database; reads and writes
go through plain helpers that load and dump JSON.

    {base}/
      infinite_adventure_save_v4.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from infinite_adventure.models import ChatMessage, GameData, SaveGame

logger = logging.getLogger(__name__)

SAVE_KEY = "infinite_adventure_save_v4"


class SaveLoadError(RuntimeError):
    """The save slot is missing or cannot be read back into a game."""


class SaveStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._base / f"{SAVE_KEY}.json"

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, game: GameData, chat: list[ChatMessage]) -> None:
        blob = SaveGame(game_data=game, chat_messages=chat)
        self.path.write_text(blob.model_dump_json(by_alias=True, indent=2))
        logger.debug("game saved to %s (%d turns)", self.path, len(game.history))

    def load(self) -> SaveGame:
        if not self.exists():
            raise SaveLoadError("No saved game")
        try:
            return SaveGame.model_validate(json.loads(self.path.read_text()))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.warning("Corrupt save at %s: %s", self.path, e)
            raise SaveLoadError(f"Saved game is corrupt: {e}") from e

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
