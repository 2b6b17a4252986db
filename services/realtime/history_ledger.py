"""Append-only record of refinement turns for a generation session."""

from __future__ import annotations

from typing import List, Tuple

from models.session_models import HistoryEntry


class HistoryLedger:
	"""Ordered (code, instruction) pairs supplied as context to update requests."""

	def __init__(self) -> None:
		self._entries: List[HistoryEntry] = []

	def append(self, prior_code: str, instruction: str) -> HistoryEntry:
		"""Record the code that existed and the instruction applied to it."""
		entry = HistoryEntry(prior_code=prior_code, instruction_applied=instruction)
		self._entries.append(entry)
		return entry

	def snapshot(self) -> Tuple[HistoryEntry, ...]:
		"""Return an immutable copy unaffected by later appends."""
		return tuple(self._entries)

	def clear(self) -> None:
		self._entries = []

	def __len__(self) -> int:
		return len(self._entries)
