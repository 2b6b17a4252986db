"""Utilities to build multimodal input payloads for the Responses API."""

from typing import Any, Dict, List, Optional, Sequence

from services.openai.prompts import (
    code_system_prompt,
    code_user_prompt,
    instruction_system_prompt,
    instruction_user_prompt,
    update_result_prompt,
)


def _text(role: str, text: str) -> Dict[str, Any]:
    content_type = "output_text" if role == "assistant" else "input_text"
    return {"type": "message", "role": role, "content": [{"type": content_type, "text": text}]}


def _images(text: Optional[str], image_urls: Sequence[str]) -> Dict[str, Any]:
    content: List[Dict[str, Any]] = [{"type": "input_image", "image_url": url} for url in image_urls if url]
    if text:
        content.append({"type": "input_text", "text": text})
    return {"type": "message", "role": "user", "content": content}


def build_code_inputs(
    image_url: str,
    history: Sequence[str] = (),
    result_image_url: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Compose a create or update conversation.

    ``history`` alternates generated code (assistant turns) with the
    instruction the user applied to it (user turns). When a screenshot of
    the current version is available it is attached to the final turn.
    """
    inputs: List[Dict[str, Any]] = [
        _text("system", code_system_prompt()),
        _images(code_user_prompt(), [image_url]),
    ]
    for index, item in enumerate(history):
        role = "assistant" if index % 2 == 0 else "user"
        inputs.append(_text(role, item))
    if result_image_url:
        inputs.append(_images(update_result_prompt(), [result_image_url]))
    return inputs


def build_instruction_inputs(image_url: str, result_image_url: Optional[str]) -> List[Dict[str, Any]]:
    """Compose a request comparing the reference with the rendered result."""
    return [
        _text("system", instruction_system_prompt()),
        _images(instruction_user_prompt(), [image_url, result_image_url or ""]),
    ]
