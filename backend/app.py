"""FastAPI app factory. One GameSession per app, shared by every request."""

import logging

from fastapi import FastAPI

from backend.routes import router
from infinite_adventure.config import Settings
from infinite_adventure.llm import GenerativeModel
from infinite_adventure.pipeline.orchestrator import GameSession
from infinite_adventure.storage import SaveStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None, model: GenerativeModel | None = None
) -> FastAPI:
    settings = settings or Settings.from_env()
    model = model or settings.build_model()
    if not settings.api_key:
        logger.info("no GEMINI_API_KEY set; using %s", type(model).__name__)

    app = FastAPI(title="Infinite Adventure")
    app.state.settings = settings
    app.state.session = GameSession(
        model=model,
        store=SaveStore(settings.data_dir),
        policy=settings.retry_policy(),
    )
    app.include_router(router, prefix="/api")

    return app


# Default app instance for uvicorn (uses env vars / .env)
app = create_app()
