"""Oracle — advisory chat about the world, decoupled from turn state.

The oracle only ever appends to its own chat log. Its calls may interleave
with turn resolution; a failed answer just leaves the question unanswered.
"""

from __future__ import annotations

import logging

from infinite_adventure.llm import GenerativeModel
from infinite_adventure.models import AdventureTurn, ChatMessage
from infinite_adventure.prompts import build_oracle_request
from infinite_adventure.retry import RetryPolicy

logger = logging.getLogger(__name__)

SILENT_ORACLE = "Оракул молчит..."


class Oracle:
    def __init__(self, model: GenerativeModel, policy: RetryPolicy) -> None:
        self._model = model
        self._policy = policy
        self.chat: list[ChatMessage] = []
        self.is_loading = False

    def reset(self, chat: list[ChatMessage] | None = None) -> None:
        self.chat = list(chat or [])
        self.is_loading = False

    async def ask(self, question: str, history: list[AdventureTurn]) -> ChatMessage | None:
        """Append the question and, if the model answers, the answer.

        Returns the answer message, or None when the question was rejected
        (blank, or another question in flight) or the call failed.
        """
        if not question.strip() or self.is_loading:
            return None

        request = build_oracle_request(question, history)
        chat = self.chat
        chat.append(ChatMessage(role="user", text=question))
        self.is_loading = True
        try:
            text = await self._policy.run(
                lambda: self._model.generate_text(
                    request.stage, request.prompt, request.system_instruction
                )
            )
        except Exception as e:
            logger.warning("Oracle failed to answer: %s", e)
            return None
        finally:
            if chat is self.chat:
                self.is_loading = False

        if chat is not self.chat:
            # session was reset while waiting
            return None
        answer = ChatMessage(role="model", text=text.strip() or SILENT_ORACLE)
        chat.append(answer)
        return answer
