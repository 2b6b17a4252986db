"""Session domain models for code generation workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List


class Phase(str, Enum):
	"""Lifecycle phase of a generation session."""

	INITIAL = "initial"
	GENERATING = "generating"
	READY = "ready"
	REFINING = "refining"


@dataclass(frozen=True)
class HistoryEntry:
	"""One refinement turn: the code that existed and the instruction applied to it."""

	prior_code: str
	instruction_applied: str


def flatten_history(entries: Iterable[HistoryEntry]) -> List[str]:
	"""Flatten refinement turns into alternating code / instruction messages."""
	return [item for entry in entries for item in (entry.prior_code, entry.instruction_applied)]


@dataclass
class SessionState:
	"""In-memory state observed by the presentation layer."""

	phase: Phase = Phase.INITIAL
	output_buffer: str = ""
	reference_images: List[str] = field(default_factory=list)
	console_log: List[str] = field(default_factory=list)
	pending_instruction: str = ""
	mistake_count: int = 0
	include_result_image: bool = False

	def as_dict(self) -> Dict[str, Any]:
		"""Return a JSON-safe view of the observable fields."""
		return {
			"phase": self.phase.value,
			"output_buffer": self.output_buffer,
			"reference_images": list(self.reference_images),
			"console_log": list(self.console_log),
			"pending_instruction": self.pending_instruction,
			"mistake_count": self.mistake_count,
			"include_result_image": self.include_result_image,
		}
