"""Front-end code generator built on OpenAI streaming Responses."""

import logging
import os
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from models.generation_models import GenerationRequest, InstructionRequest, Log, Replace, StreamEvent, Token
from services.image_processing import ImageProcessor
from services.openai.image_generation import PlaceholderImageGenerator
from services.openai.media_inputs import build_code_inputs, build_instruction_inputs
from services.openai.response_parser import extract_html, extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
DEFAULT_MAX_OUTPUT_TOKENS = 4096


class CodeGenerator:
    """Stream code (or a refinement instruction) for a generation request.

    ``stream`` is the producer plugged into ``StreamingChannel``: it yields
    ``Log`` lines for the console, ``Token`` deltas while the model writes,
    and one final ``Replace`` carrying the consolidated result.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        image_processor: Optional[ImageProcessor] = None,
        client_factory: Callable[..., AsyncOpenAI] = AsyncOpenAI,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.image_processor = image_processor or ImageProcessor()
        self.client_factory = client_factory

    def _resolve_client(self, params: Dict[str, Any]) -> AsyncOpenAI:
        """Use the caller's own API key when it differs from the server key."""
        api_key = params.get("openAiApiKey")
        if api_key and api_key != getattr(self.client, "api_key", None):
            return self.client_factory(api_key=api_key)
        return self.client

    def _build_inputs(self, request: GenerationRequest, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        image = self.image_processor.process_data_url(params.get("image") or request.image)
        result_image = params.get("resultImage")
        if result_image:
            result_image = self.image_processor.process_data_url(result_image)
        if isinstance(request, InstructionRequest):
            return build_instruction_inputs(image, result_image)
        return build_code_inputs(image, params.get("history") or [], result_image)

    async def stream(self, request: GenerationRequest, params: Dict[str, Any]) -> AsyncIterator[StreamEvent]:
        """Yield stream events for ``request`` using the merged ``params``.

        The model stream is closed when the caller stops iterating, including
        when the channel task is cancelled. A client built for a per-user key
        is closed once the request is over.
        """
        is_instruction = isinstance(request, InstructionRequest)
        yield Log("Generating instruction..." if is_instruction else "Generating code...")

        client = self._resolve_client(params)
        try:
            inputs = self._build_inputs(request, params)
            parts: List[str] = []
            final_response = None
            async with client.responses.stream(
                model=self.model,
                input=inputs,
                max_output_tokens=self.max_output_tokens,
            ) as response_stream:
                async for event in response_stream:
                    event_type = getattr(event, "type", "")
                    if event_type == "response.output_text.delta":
                        delta = getattr(event, "delta", "") or ""
                        parts.append(delta)
                        yield Token(delta)
                    elif event_type == "response.completed":
                        final_response = getattr(event, "response", None)
                    elif event_type in ("response.failed", "error"):
                        raise RuntimeError(_error_message(event))

            text = extract_text(final_response) if final_response is not None else ""
            text = text or "".join(parts)
            if final_response is not None:
                LOGGER.info("%s generation usage: %s", request.generation_type, extract_usage(final_response))

            if is_instruction:
                yield Replace(text.strip())
                yield Log("Instruction generation complete.")
                return

            code = extract_html(text)
            if params.get("isImageGenerationEnabled"):
                yield Log("Generating images...")
                code = await PlaceholderImageGenerator(client).replace_placeholders(code)
            yield Replace(code)
            yield Log("Code generation complete.")
        finally:
            if client is not self.client:
                await client.close()


def _error_message(event: Any) -> str:
    error = getattr(event, "error", None)
    if error is None:
        error = getattr(getattr(event, "response", None), "error", None)
    message = getattr(error, "message", None) or getattr(event, "message", None)
    return message or "Code generation failed."
