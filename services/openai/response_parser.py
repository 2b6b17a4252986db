"""Helpers to parse Responses API outputs."""

import re
from typing import Any, Dict, Optional

_HTML = re.compile(r"(<html.*?>.*?</html>)", re.DOTALL | re.IGNORECASE)
_FENCE = re.compile(r"^```[\w-]*\s*|\s*```$")


def extract_text(response: Any) -> str:
    """Extract the concatenated output_text entries from a Responses API result."""
    text = getattr(response, "output_text", None)
    if text:
        return text
    parts = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                parts.append(getattr(content, "text", "") or "")
    return "".join(parts)


def extract_html(text: str) -> str:
    """Return the <html>...</html> document inside ``text``, or the text without fences."""
    match = _HTML.search(text or "")
    if match:
        return match.group(1)
    return _FENCE.sub("", (text or "").strip())


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }
