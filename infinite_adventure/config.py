"""Runtime settings read from the environment (and a ``.env`` file).

    GEMINI_API_KEY        API key; empty runs the offline EchoModel
    GEMINI_TEXT_MODEL     text/JSON model name
    GEMINI_IMAGE_MODEL    image model name
    GEMINI_BASE_URL       API root
    REQUEST_TIMEOUT       hard per-request timeout, seconds
    RETRY_MAX_ATTEMPTS    attempts per call, quota errors only
    RETRY_BASE_DELAY      first backoff, seconds
    RETRY_MULTIPLIER      backoff growth factor
    RETRY_MAX_JITTER      upper bound of the random jitter, seconds
    DATA_DIR              where the save slot lives
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

from infinite_adventure.llm import (
    DEFAULT_BASE_URL,
    DEFAULT_IMAGE_MODEL,
    DEFAULT_TEXT_MODEL,
    EchoModel,
    GeminiClient,
    GenerativeModel,
)
from infinite_adventure.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_JITTER,
    DEFAULT_MULTIPLIER,
    RetryPolicy,
)

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"


class Settings(BaseModel):
    api_key: str = ""
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 90.0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = DEFAULT_BASE_DELAY
    retry_multiplier: float = DEFAULT_MULTIPLIER
    retry_max_jitter: float = DEFAULT_MAX_JITTER
    data_dir: Path = DEFAULT_DATA_DIR

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> Settings:
        load_dotenv(env_file or ROOT / ".env")
        return cls(
            api_key=os.getenv("GEMINI_API_KEY", ""),
            text_model=os.getenv("GEMINI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            image_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "90")),
            max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))),
            retry_base_delay=float(os.getenv("RETRY_BASE_DELAY", str(DEFAULT_BASE_DELAY))),
            retry_multiplier=float(os.getenv("RETRY_MULTIPLIER", str(DEFAULT_MULTIPLIER))),
            retry_max_jitter=float(os.getenv("RETRY_MAX_JITTER", str(DEFAULT_MAX_JITTER))),
            data_dir=Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.retry_base_delay,
            multiplier=self.retry_multiplier,
            max_jitter=self.retry_max_jitter,
            timeout=self.request_timeout,
        )

    def build_model(self) -> GenerativeModel:
        """GeminiClient when a key is configured, otherwise the offline EchoModel."""
        if not self.api_key:
            return EchoModel()
        return GeminiClient(
            api_key=self.api_key,
            text_model=self.text_model,
            image_model=self.image_model,
            base_url=self.base_url,
            timeout=self.request_timeout,
        )
