"""Oracle chat endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from infinite_adventure.pipeline.orchestrator import GameSession

from .game import get_session
from .models import OracleBody

router = APIRouter()


@router.post("/oracle")
async def ask_oracle(body: OracleBody, session: GameSession = Depends(get_session)):
    """Ask the oracle. A failed answer leaves only the question in the log."""
    if not body.question.strip():
        raise HTTPException(400, "Question must not be empty")
    answer = await session.ask_oracle(body.question)
    return {
        "answer": answer.model_dump() if answer else None,
        "chatMessages": [m.model_dump() for m in session.oracle.chat],
    }
