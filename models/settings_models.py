"""Ambient configuration merged into every generation request."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel

TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY


class AmbientSettings(BaseModel):
    """User preferences and credentials shared by all requests of a session.

    Attributes:
        openai_api_key: Optional per-user key; falls back to the server key when unset.
        screenshot_one_api_key: Key for capturing reference images from URLs.
        is_image_generation_enabled: Replace placeholder images after code generation.
        editor_theme: Code editor theme forwarded to the presentation layer.
        is_term_of_service_accepted: Whether the user accepted the hosted terms.
    """

    openai_api_key: Optional[str] = None
    screenshot_one_api_key: Optional[str] = None
    is_image_generation_enabled: bool = True
    editor_theme: str = "cobalt"
    is_term_of_service_accepted: bool = False

    @classmethod
    def from_env(cls) -> "AmbientSettings":
        """Build settings from environment variables (after `load_dotenv`)."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            screenshot_one_api_key=os.getenv("SCREENSHOT_ONE_API_KEY") or None,
            is_image_generation_enabled=_env_flag("IMAGE_GENERATION_ENABLED", True),
            editor_theme=os.getenv("EDITOR_THEME", "cobalt"),
            is_term_of_service_accepted=_env_flag("TERMS_ACCEPTED", False),
        )

    def as_params(self) -> Dict[str, Any]:
        """Return the camelCase keys sent alongside each generation request."""
        return {
            "openAiApiKey": self.openai_api_key,
            "screenshotOneApiKey": self.screenshot_one_api_key,
            "isImageGenerationEnabled": self.is_image_generation_enabled,
            "editorTheme": self.editor_theme,
            "isTermOfServiceAccepted": self.is_term_of_service_accepted,
        }


def merge_params(request_params: Dict[str, Any], settings: AmbientSettings) -> Dict[str, Any]:
    """Merge request-local params with ambient settings; ambient values win."""
    return {**request_params, **settings.as_params()}
