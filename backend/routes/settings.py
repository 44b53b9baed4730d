"""Health check and read-only settings endpoints."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Model names and retry knobs in effect. The API key is never returned."""
    settings = request.app.state.settings
    return {
        "online": bool(settings.api_key),
        **settings.model_dump(mode="json", exclude={"api_key", "data_dir"}),
    }
