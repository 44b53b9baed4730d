"""Turn orchestrator — owns one game session and drives its state machine.

    START → SETUP → LOADING → PLAYING ⇄ COMBAT → GAMEOVER
                       └──────────┴──────┴────→ ERROR
    GAMEOVER / ERROR → START (restart)

Turn flow (submit_action):
  1. Reject if not in play, if a turn is already in flight, or if the action
     is blank. Rejection dispatches nothing and changes nothing.
  2. Build the continuation request (combat mode when the state is COMBAT).
  3. Call the model through the retry policy, validate with the mapper.
  4. Commit atomically: append the turn, replace current turn and stats,
     clamp hp into [0, maxHp]. hp == 0 → GAMEOVER, otherwise PLAYING or
     COMBAT by the new turn's locationType.
     Any failure → ERROR, history untouched.
  5. Spawn the illustration task, tagged (generation, turn number).

Async results are only applied while their generation is current. restart()
and load_game() bump the generation, so anything still in flight from the
old session is ignored when it lands. Image results additionally have to
match the current turn number.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from infinite_adventure.images import request_image
from infinite_adventure.llm import GenerativeModel
from infinite_adventure.mapper import parse_init, parse_turn
from infinite_adventure.models import (
    AdventureTurn,
    ChatMessage,
    GameData,
    GameState,
    WorldCustomization,
)
from infinite_adventure.oracle import Oracle
from infinite_adventure.prompts import build_init_request, build_turn_request
from infinite_adventure.retry import RetryPolicy
from infinite_adventure.storage import SaveLoadError, SaveStore

logger = logging.getLogger(__name__)

ImageTag = tuple[int, int]  # (generation, turn number)

IN_PLAY = (GameState.PLAYING, GameState.COMBAT)


class GameError(RuntimeError):
    """Base class for requests the session refuses."""


class TurnRejected(GameError):
    """Submission refused: nothing was dispatched and the state is unchanged."""


class InvalidTransition(GameError):
    """The requested transition is not allowed from the current state."""


class GameSession:
    """Single-writer controller for one player's game.

    Args:
        model:  Generative model used for turns, images and the oracle.
        store:  Save slot.
        policy: Retry policy wrapped around every remote call.
    """

    def __init__(
        self,
        model: GenerativeModel,
        store: SaveStore,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._model = model
        self._store = store
        self._policy = policy or RetryPolicy()
        self._generation = 0
        self._image_tasks: set[asyncio.Task] = set()

        self.state = GameState.START
        self.game = GameData()
        self.selected_genre = ""
        self.customization = WorldCustomization()
        self.is_text_loading = False
        self.is_image_loading = False
        self.error: str | None = None
        self.oracle = Oracle(model, self._policy)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_play(self) -> bool:
        return self.state in IN_PLAY

    @property
    def turn_number(self) -> int:
        return len(self.game.history)

    def has_save(self) -> bool:
        return self._store.exists()

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "generation": self._generation,
            "selectedGenre": self.selected_genre,
            "isTextLoading": self.is_text_loading,
            "isImageLoading": self.is_image_loading,
            "isOracleLoading": self.oracle.is_loading,
            "error": self.error,
            "hasSave": self.has_save(),
            "gameData": self.game.model_dump(mode="json", by_alias=True),
            "chatMessages": [m.model_dump(mode="json") for m in self.oracle.chat],
        }

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def select_genre(
        self, genre: str, customization: WorldCustomization | None = None
    ) -> GameState:
        if self.state not in (GameState.START, GameState.SETUP):
            raise InvalidTransition(f"Cannot choose a genre while {self.state.value}")
        if not genre.strip():
            raise GameError("Genre must not be empty")
        self.selected_genre = genre.strip()
        self.customization = customization or WorldCustomization()
        self.state = GameState.SETUP
        return self.state

    async def start_game(
        self,
        genre: str | None = None,
        customization: WorldCustomization | None = None,
    ) -> GameState:
        """Create the hero and the opening turn."""
        if self.state not in (GameState.START, GameState.SETUP):
            raise InvalidTransition(f"Cannot start a game while {self.state.value}")
        if genre is not None:
            self.select_genre(genre, customization)
        if not self.selected_genre:
            raise InvalidTransition("No genre selected")

        self._generation += 1
        generation = self._generation
        request = build_init_request(self.selected_genre, self.customization)
        self.state = GameState.LOADING
        self.is_text_loading = True
        logger.info("starting game genre=%r generation=%d", self.selected_genre, generation)

        try:
            raw = await self._policy.run(
                lambda: self._model.generate_json(
                    request.stage, request.prompt, request.response_schema
                )
            )
            result = parse_init(raw)
        except Exception as e:
            if generation != self._generation:
                return self.state
            return self._fail("initialization", e)

        if generation != self._generation:
            logger.debug("discarding init result from generation %d", generation)
            return self.state

        game = GameData(
            history=[result.turn],
            current_turn=result.turn,
            genre=self.selected_genre,
            character_description=result.character_description,
            current_image=None,
            stats=result.stats.healed(),
        )
        return self._commit(game)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def choose(self, index: int) -> GameState:
        """Submit one of the current turn's choices by position."""
        turn = self.game.current_turn
        if not self.in_play or turn is None:
            raise TurnRejected("Game is not in progress")
        if not 0 <= index < len(turn.choices):
            raise TurnRejected(f"No choice #{index}")
        return await self.submit_action(turn.choices[index])

    async def submit_action(self, action: str) -> GameState:
        """Resolve one player action (a listed choice or free text)."""
        if not self.in_play:
            raise TurnRejected("Game is not in progress")
        if self.is_text_loading:
            raise TurnRejected("A turn is already being resolved")
        if not action.strip():
            raise TurnRejected("Action must not be empty")

        generation = self._generation
        before = self.game
        request = build_turn_request(
            before.genre,
            before.history,
            action,
            before.character_description,
            before.stats,
            is_combat=self.state is GameState.COMBAT,
        )
        self.is_text_loading = True

        try:
            raw = await self._policy.run(
                lambda: self._model.generate_json(
                    request.stage, request.prompt, request.response_schema
                )
            )
            result = parse_turn(raw)
        except Exception as e:
            if generation != self._generation:
                return self.state
            return self._fail("turn", e)

        if generation != self._generation:
            logger.debug("discarding turn result from generation %d", generation)
            return self.state

        game = before.model_copy(
            update={
                "history": [*before.history, result.turn],
                "current_turn": result.turn,
                "stats": result.stats.clamped(),
            }
        )
        return self._commit(game)

    def _commit(self, game: GameData) -> GameState:
        """Single entry point for accepted turns."""
        turn = game.current_turn
        assert turn is not None and game.history and game.history[-1] == turn

        self.game = game
        self.is_text_loading = False
        self.error = None
        if game.stats.hp <= 0:
            self.state = GameState.GAMEOVER
        elif turn.is_threat:
            self.state = GameState.COMBAT
        else:
            self.state = GameState.PLAYING
        logger.info(
            "turn %d committed: %s at %r, hp %d/%d",
            self.turn_number, self.state.value, turn.location_name,
            game.stats.hp, game.stats.max_hp,
        )
        self._spawn_image(turn)
        return self.state

    def _fail(self, stage: str, error: Exception) -> GameState:
        logger.error("%s failed, session halted: %s", stage, error, exc_info=error)
        self.state = GameState.ERROR
        self.error = str(error) or type(error).__name__
        self.is_text_loading = False
        return self.state

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _spawn_image(self, turn: AdventureTurn) -> None:
        tag: ImageTag = (self._generation, self.turn_number)
        self.is_image_loading = True
        task = asyncio.create_task(self._illustrate(tag, turn.image_prompt))
        self._image_tasks.add(task)
        task.add_done_callback(self._image_tasks.discard)

    async def _illustrate(self, tag: ImageTag, descriptor: str) -> None:
        image = await request_image(self._model, descriptor, self._policy)
        self.apply_image(tag, image)

    def apply_image(self, tag: ImageTag, image: str) -> bool:
        """Show an image if it still belongs to the current turn."""
        generation, turn_number = tag
        if generation != self._generation or turn_number != self.turn_number:
            logger.debug(
                "discarding stale image for turn %d (current %d)",
                turn_number, self.turn_number,
            )
            return False
        self.is_image_loading = False
        if not image:
            return False
        self.game = self.game.model_copy(update={"current_image": image})
        return True

    async def wait_for_images(self) -> None:
        """Wait for every outstanding illustration task."""
        while self._image_tasks:
            await asyncio.gather(*list(self._image_tasks))

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------

    async def ask_oracle(self, question: str) -> ChatMessage | None:
        return await self.oracle.ask(question, self.game.history)

    # ------------------------------------------------------------------
    # Restart, save, load
    # ------------------------------------------------------------------

    def restart(self) -> GameState:
        """Drop the session. After GAMEOVER the save slot is wiped too."""
        if self.state is GameState.GAMEOVER:
            self._store.clear()
        self._reset()
        logger.info("session restarted, generation=%d", self._generation)
        return self.state

    def _reset(self) -> None:
        self._generation += 1
        self.state = GameState.START
        self.game = GameData()
        self.selected_genre = ""
        self.customization = WorldCustomization()
        self.is_text_loading = False
        self.is_image_loading = False
        self.error = None
        self.oracle.reset()

    def save_game(self) -> None:
        if self.game.current_turn is None:
            raise GameError("Nothing to save yet")
        self._store.save(self.game, self.oracle.chat)

    def load_game(self) -> GameState:
        """Restore the save slot. Raises SaveLoadError and keeps the session as is."""
        if self.state is GameState.LOADING:
            raise InvalidTransition("Cannot load while a game is being created")
        saved = self._store.load()
        game = saved.game_data
        if not game.history:
            raise SaveLoadError("Saved game has no turns")

        game = game.model_copy(
            update={"current_turn": game.history[-1], "stats": game.stats.clamped()}
        )
        self._reset()
        self.game = game
        self.selected_genre = game.genre
        self.oracle.reset(saved.chat_messages)
        if game.stats.hp <= 0:
            self.state = GameState.GAMEOVER
        elif game.history[-1].is_threat:
            self.state = GameState.COMBAT
        else:
            self.state = GameState.PLAYING
        logger.info("save loaded: %d turns, %s", self.turn_number, self.state.value)
        return self.state
