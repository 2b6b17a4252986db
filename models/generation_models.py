"""Request and stream event value objects exchanged with the generation channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from models.session_models import HistoryEntry, flatten_history


@dataclass(frozen=True)
class CreateRequest:
	"""Generate the first version of the code from a reference image."""

	image: str

	generation_type = "create"

	def to_params(self) -> Dict[str, Any]:
		return {"generationType": self.generation_type, "image": self.image}


@dataclass(frozen=True)
class UpdateRequest:
	"""Regenerate the code using the refinement history as context."""

	image: str
	history: Tuple[HistoryEntry, ...]
	result_image: Optional[str] = None

	generation_type = "update"

	def to_params(self) -> Dict[str, Any]:
		params: Dict[str, Any] = {
			"generationType": self.generation_type,
			"image": self.image,
			"history": flatten_history(self.history),
		}
		if self.result_image:
			params["resultImage"] = self.result_image
		return params


@dataclass(frozen=True)
class InstructionRequest:
	"""Compare the reference with the rendered result and describe what to fix."""

	image: str
	result_image: str

	generation_type = "instruction"

	def to_params(self) -> Dict[str, Any]:
		params: Dict[str, Any] = {"generationType": self.generation_type, "image": self.image}
		if self.result_image:
			params["resultImage"] = self.result_image
		return params


GenerationRequest = Union[CreateRequest, UpdateRequest, InstructionRequest]


@dataclass(frozen=True)
class Token:
	"""Incremental text appended to the active buffer."""

	text: str


@dataclass(frozen=True)
class Replace:
	"""Authoritative snapshot that overrides the active buffer."""

	text: str


@dataclass(frozen=True)
class Log:
	"""Diagnostic line for the execution console."""

	line: str


@dataclass(frozen=True)
class Done:
	"""Successful end of a stream."""


@dataclass(frozen=True)
class Cancelled:
	"""Stream stopped at the user's request."""


@dataclass(frozen=True)
class Failed:
	"""Stream ended because the transport or the producer failed."""

	detail: str


StreamEvent = Union[Token, Replace, Log, Done, Cancelled, Failed]
TERMINAL_EVENTS = (Done, Cancelled, Failed)


def is_terminal(event: StreamEvent) -> bool:
	"""Return True when no further events follow ``event``."""
	return isinstance(event, TERMINAL_EVENTS)
