"""Replace placeholder images in generated code with AI generated images."""

import asyncio
import logging
import os
import re
from typing import Dict, List, Optional

from openai import AsyncOpenAI

LOGGER = logging.getLogger(__name__)
DEFAULT_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
PLACEHOLDER_PREFIX = "https://placehold.co"
MAX_CONCURRENT_IMAGES = 4

_IMG_TAG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_ATTR = r"""\b{name}\s*=\s*(?:"([^"]*)"|'([^']*)')"""


def _attribute(tag: str, name: str) -> Optional[str]:
    match = re.search(_ATTR.format(name=name), tag, re.IGNORECASE)
    if not match:
        return None
    return match.group(1) if match.group(1) is not None else match.group(2)


def find_placeholders(code: str) -> Dict[str, str]:
    """Map each placeholder image src to the alt text describing it."""
    placeholders: Dict[str, str] = {}
    for tag in _IMG_TAG.findall(code or ""):
        src = _attribute(tag, "src")
        alt = (_attribute(tag, "alt") or "").strip()
        if src and src.startswith(PLACEHOLDER_PREFIX) and alt:
            placeholders.setdefault(src, alt)
    return placeholders


class PlaceholderImageGenerator:
    """Generate an image for every placeholder and substitute its URL."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_IMAGE_MODEL) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def _generate(self, prompt: str, limiter: asyncio.Semaphore) -> Optional[str]:
        async with limiter:
            try:
                response = await self.client.images.generate(
                    model=self.model, prompt=prompt, n=1, size="1024x1024"
                )
            except Exception as exc:
                LOGGER.warning("Image generation failed for %r: %s", prompt[:60], exc)
                return None
        data = getattr(response, "data", None) or []
        return getattr(data[0], "url", None) if data else None

    async def replace_placeholders(self, code: str) -> str:
        """Return ``code`` with generated image URLs; unresolved placeholders stay."""
        placeholders = find_placeholders(code)
        if not placeholders:
            return code
        limiter = asyncio.Semaphore(MAX_CONCURRENT_IMAGES)
        sources: List[str] = list(placeholders)
        urls = await asyncio.gather(*(self._generate(placeholders[src], limiter) for src in sources))
        for src, url in zip(sources, urls):
            if url:
                code = code.replace(src, url)
        return code
