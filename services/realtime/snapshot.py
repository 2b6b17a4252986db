"""Visual snapshots of the rendered result, supplied by the presentation layer."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

LOGGER = logging.getLogger(__name__)

SnapshotProvider = Callable[[], Union[str, None, Awaitable[Optional[str]]]]


class LatestSnapshot:
	"""Keep the most recent preview screenshot pushed by the browser."""

	def __init__(self) -> None:
		self._image: str = ""

	def update(self, image: Optional[str]) -> None:
		self._image = (image or "").strip()

	def clear(self) -> None:
		self._image = ""

	def __call__(self) -> str:
		return self._image


async def capture_snapshot(provider: Optional[SnapshotProvider]) -> str:
	"""Return the encoded snapshot, or an empty string when it is unavailable."""
	if provider is None:
		return ""
	try:
		result = provider()
		if inspect.isawaitable(result):
			result = await result
	except Exception as exc:
		LOGGER.warning("Snapshot capture failed; continuing without result image: %s", exc)
		return ""
	return result or ""
