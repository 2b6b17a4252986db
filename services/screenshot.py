"""Capture a reference image from a public URL using the ScreenshotOne API."""

import logging
from typing import Any, Dict, Optional

import httpx

from utils.media_validation import ensure_image_data_url

LOGGER = logging.getLogger(__name__)
SCREENSHOT_API_URL = "https://api.screenshotone.com/take"
DEFAULT_TIMEOUT = 60.0


class ScreenshotService:
    """Turn a URL into a PNG data URL usable as a reference image."""

    def __init__(self, api_key: Optional[str], client: Optional[httpx.AsyncClient] = None) -> None:
        self.api_key = api_key
        self.client = client

    def _params(self, target_url: str) -> Dict[str, Any]:
        return {
            "access_key": self.api_key,
            "url": target_url,
            "full_page": "true",
            "device_scale_factor": "1",
            "format": "png",
            "block_ads": "true",
            "block_cookie_banners": "true",
            "block_trackers": "true",
            "cache": "false",
            "viewport_width": "1280",
            "viewport_height": "832",
        }

    async def capture(self, target_url: str) -> str:
        """Return a ``data:image/png`` URL for ``target_url``.

        Raises:
            ValueError: If no API key is configured or the URL is not http(s).
            RuntimeError: If the screenshot service rejects the request.
        """
        if not self.api_key:
            raise ValueError("A ScreenshotOne API key is required to capture URLs.")
        target_url = (target_url or "").strip()
        if not target_url.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")

        if self.client is not None:
            response = await self.client.get(SCREENSHOT_API_URL, params=self._params(target_url))
        else:
            async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                response = await client.get(SCREENSHOT_API_URL, params=self._params(target_url))

        if response.status_code != 200:
            LOGGER.warning("Screenshot request for %s failed with %s", target_url, response.status_code)
            raise RuntimeError(f"Failed to capture screenshot (status {response.status_code}).")
        return ensure_image_data_url(response.content, "image/png")
