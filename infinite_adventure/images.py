"""Best-effort illustration requests.

An image is decoration: every failure is logged and absorbed here, and the
caller receives an empty string instead.
"""

from __future__ import annotations

import logging

from infinite_adventure.llm import GenerativeModel
from infinite_adventure.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "16:9"
QUALITY_SUFFIX = ". Masterpiece, high detail."


def to_data_url(data: str, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{data}"


async def request_image(
    model: GenerativeModel,
    descriptor: str,
    policy: RetryPolicy,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> str:
    """Return a data URL for the scene, or ``""`` when no image could be made."""
    if not descriptor.strip():
        return ""
    prompt = f"{descriptor.strip()}{QUALITY_SUFFIX}"
    try:
        data = await policy.run(lambda: model.generate_image(prompt, aspect_ratio))
    except Exception as e:
        logger.warning("Image generation skipped: %s", e)
        return ""
    if not data:
        logger.debug("Image model returned no inline data")
        return ""
    return to_data_url(data)
