"""Game session endpoints: setup, turns, restart, save/load."""

from fastapi import APIRouter, Depends, HTTPException, Request

from infinite_adventure.models import GENRES
from infinite_adventure.pipeline.orchestrator import GameError, GameSession
from infinite_adventure.storage import SaveLoadError

from .models import GenreBody, StartBody, TurnBody

router = APIRouter()


def get_session(request: Request) -> GameSession:
    return request.app.state.session


@router.get("/game")
async def get_game(session: GameSession = Depends(get_session)):
    """Current state, game data, chat log and loading flags."""
    return session.snapshot()


@router.get("/genres")
async def list_genres():
    """Preset genres for the start screen. Free-text genres are also accepted."""
    return {"genres": list(GENRES)}


@router.post("/game/genre")
async def choose_genre(body: GenreBody, session: GameSession = Depends(get_session)):
    """Pick a genre (and optional world customization) → SETUP."""
    try:
        session.select_genre(body.genre, body.customization)
    except GameError as e:
        raise HTTPException(409, str(e))
    return session.snapshot()


@router.post("/game/start")
async def start_game(body: StartBody, session: GameSession = Depends(get_session)):
    """Generate the hero and opening turn. Failure lands in ERROR, not a 5xx."""
    try:
        await session.start_game(body.genre, body.customization)
    except GameError as e:
        raise HTTPException(409, str(e))
    return session.snapshot()


@router.post("/game/turn")
async def submit_turn(body: TurnBody, session: GameSession = Depends(get_session)):
    """Resolve a listed choice or a free-text action."""
    try:
        if body.choice_index is not None:
            await session.choose(body.choice_index)
        else:
            await session.submit_action(body.action or "")
    except GameError as e:
        raise HTTPException(409, str(e))
    return session.snapshot()


@router.post("/game/restart")
async def restart(session: GameSession = Depends(get_session)):
    """Back to START. After GAMEOVER the save slot is wiped as well."""
    session.restart()
    return session.snapshot()


@router.post("/game/save")
async def save_game(session: GameSession = Depends(get_session)):
    """Write the current game and chat log to the save slot."""
    try:
        session.save_game()
    except GameError as e:
        raise HTTPException(409, str(e))
    return {"ok": True}


@router.post("/game/load")
async def load_game(session: GameSession = Depends(get_session)):
    """Restore the save slot; a threat location resumes straight into COMBAT."""
    if not session.has_save():
        raise HTTPException(404, "No saved game")
    try:
        session.load_game()
    except SaveLoadError as e:
        raise HTTPException(400, str(e))
    except GameError as e:
        raise HTTPException(409, str(e))
    return session.snapshot()
