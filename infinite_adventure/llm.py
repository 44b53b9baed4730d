"""Generative model client — HTTP connection to the Gemini REST API.

The orchestrator talks to an injected object matching the protocol:

    async def generate_json(self, stage, prompt, schema, system_instruction=None) -> str
    async def generate_text(self, stage, prompt, system_instruction=None) -> str
    async def generate_image(self, prompt, aspect_ratio="16:9") -> str | None

`stage` identifies which game event is calling (e.g. "init", "turn",
"oracle"). Implementations may use it for logging; the simplest ignore it.

Two implementations are provided:

    GeminiClient — real HTTP client for the generateContent endpoint.
    EchoModel    — canned, schema-valid responses. Lets the dev server and
                   smoke tests run the whole game loop without an API key.

Tests use a scripted stub (defined in the test helpers) instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TEXT_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


# ---------------------------------------------------------------------------
# Protocol: every model implementation must match these signatures
# ---------------------------------------------------------------------------

class GenerativeModel(Protocol):
    async def generate_json(
        self,
        stage: str,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str | None = None,
    ) -> str: ...

    async def generate_text(
        self, stage: str, prompt: str, system_instruction: str | None = None
    ) -> str: ...

    async def generate_image(
        self, prompt: str, aspect_ratio: str = "16:9"
    ) -> str | None: ...


# ---------------------------------------------------------------------------
# GeminiClient: connects to the real service
# ---------------------------------------------------------------------------

class GeminiClient:
    """Async HTTP client for the Gemini ``generateContent`` endpoint.

    Request:  POST {base_url}/models/{model}:generateContent
              {"contents": [...], "generationConfig": {...}, "systemInstruction": {...}}
    Response: {"candidates": [{"content": {"parts": [{"text": ...} | {"inlineData": ...}]}}]}

    Args:
        api_key:      API key, sent as the ``x-goog-api-key`` header.
        text_model:   Model used for narrative, JSON and oracle calls.
        image_model:  Model used for illustrations.
        base_url:     API root. Override for proxies and tests.
        timeout:      HTTP timeout in seconds. Defaults to 60.
    """

    def __init__(
        self,
        api_key: str,
        text_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._text_model = text_model
        self._image_model = image_model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-goog-api-key"] = self._api_key
        return headers

    def _url(self, model: str) -> str:
        return f"{self._base_url}/models/{model}:generateContent"

    def _build_body(
        self,
        prompt: str,
        generation_config: dict[str, Any] | None = None,
        system_instruction: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if generation_config:
            body["generationConfig"] = generation_config
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return body

    async def _post(self, stage: str, model: str, body: dict[str, Any]) -> dict[str, Any]:
        url = self._url(model)
        logger.debug("model call stage=%s model=%s", stage, model)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise NetworkOrUnknownError(f"Cannot connect to model backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = e.response.text[:300]
            if status == 429:
                raise TransientQuotaError(f"Model backend returned HTTP 429: {detail}") from e
            raise NetworkOrUnknownError(f"Model backend returned HTTP {status}: {detail}") from e
        except httpx.TimeoutException as e:
            raise NetworkOrUnknownError(f"Model backend timed out after {self._timeout}s") from e

        return resp.json()

    @staticmethod
    def _parts(data: dict[str, Any]) -> list[dict[str, Any]]:
        candidates = data.get("candidates")
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise NetworkOrUnknownError(
                f"Model returned no candidates (blockReason={feedback.get('blockReason')})"
            )
        return candidates[0].get("content", {}).get("parts", []) or []

    def _parse_text(self, data: dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        return "".join(p["text"] for p in self._parts(data) if "text" in p)

    async def generate_json(
        self,
        stage: str,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str | None = None,
    ) -> str:
        body = self._build_body(
            prompt,
            {"responseMimeType": "application/json", "responseSchema": schema},
            system_instruction,
        )
        text = self._parse_text(await self._post(stage, self._text_model, body))
        if not text:
            raise NetworkOrUnknownError(f"Empty response for stage {stage}")
        logger.debug("model response stage=%s len=%d", stage, len(text))
        return text

    async def generate_text(
        self, stage: str, prompt: str, system_instruction: str | None = None
    ) -> str:
        body = self._build_body(prompt, None, system_instruction)
        text = self._parse_text(await self._post(stage, self._text_model, body))
        logger.debug("model response stage=%s len=%d", stage, len(text))
        return text

    async def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> str | None:
        """Return base64 image data from the first inline part, or None."""
        body = self._build_body(
            prompt,
            {"responseModalities": ["IMAGE"], "imageConfig": {"aspectRatio": aspect_ratio}},
        )
        for part in self._parts(await self._post("image", self._image_model, body)):
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                return inline["data"]
        return None


# ---------------------------------------------------------------------------
# EchoModel: canned responses; useful for offline play and smoke tests
# ---------------------------------------------------------------------------

class EchoModel:
    """Answers every call with a fixed, schema-valid payload. No network calls.

    The story echoes the tail of the prompt so the wiring (history window,
    player action) is visible when playing offline.
    """

    async def generate_json(
        self,
        stage: str,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str | None = None,
    ) -> str:
        logger.debug("EchoModel stage=%s prompt_len=%d", stage, len(prompt))
        turn = {
            "locationName": "Тихая поляна",
            "locationType": "neutral",
            "threatLevel": 1,
            "story": prompt.strip()[-400:] or "...",
            "choices": ["Идти дальше", "Осмотреться", "Отдохнуть"],
            "inventory": ["Факел"],
            "currentQuest": "Найти выход",
            "imagePrompt": "quiet forest clearing at dusk",
        }
        stats = {"hp": 100, "maxHp": 100, "str": 10, "agi": 10, "int": 10, "level": 1, "exp": 0}
        if stage == "init":
            payload = {"characterDescription": "Безымянный странник", "stats": stats, "turn": turn}
        else:
            payload = {"turn": turn, "updatedStats": stats}
        return json.dumps(payload, ensure_ascii=False)

    async def generate_text(
        self, stage: str, prompt: str, system_instruction: str | None = None
    ) -> str:
        logger.debug("EchoModel stage=%s prompt_len=%d", stage, len(prompt))
        return prompt

    async def generate_image(self, prompt: str, aspect_ratio: str = "16:9") -> str | None:
        return None


# ---------------------------------------------------------------------------
# Errors: raised by GeminiClient for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the model backend cannot be reached or returns an error."""


class TransientQuotaError(LLMError):
    """The backend refused the call because of rate or quota limits (HTTP 429)."""


class NetworkOrUnknownError(LLMError):
    """Connection, timeout, non-quota HTTP or response-shape failure."""
