"""FastAPI API endpoints under /api.

Endpoint groups: health/settings, game (genre, start, turn, restart, save,
load) and oracle. One GameSession lives in app.state and is shared by all
requests; it is the only writer of game state.
"""

from fastapi import APIRouter

from .game import router as game_router
from .oracle import router as oracle_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
router.include_router(oracle_router)
