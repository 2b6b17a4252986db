"""Streaming channel between a session and the code generation backend."""

from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Callable, Dict, Optional, Protocol

from models.generation_models import (
	Cancelled,
	Done,
	Failed,
	GenerationRequest,
	Log,
	StreamEvent,
	is_terminal,
)
from services.realtime.errors import ChannelBusyError

LOGGER = logging.getLogger(__name__)

NORMAL_CLOSE_CODE = 1000
SERVER_ERROR_CLOSE_CODE = 1011
# Close code reserved for a stop requested by the user.
USER_CLOSE_CODE = 4333

EventCallback = Callable[[StreamEvent], None]
Producer = Callable[[GenerationRequest, Dict[str, Any]], AsyncGenerator[StreamEvent, None]]

_handle_ids = itertools.count(1)


class ChannelHandle:
	"""One open stream. ``close_code`` is set once a terminal event was delivered."""

	def __init__(self, request: GenerationRequest, on_event: EventCallback) -> None:
		self.id = next(_handle_ids)
		self.request = request
		self.close_code: Optional[int] = None
		self._on_event = on_event
		self._task: Optional[asyncio.Task] = None

	@property
	def closed(self) -> bool:
		return self.close_code is not None

	@property
	def cancelled_by_user(self) -> bool:
		return self.close_code == USER_CLOSE_CODE

	def __repr__(self) -> str:
		return f"ChannelHandle(id={self.id}, type={self.request.generation_type!r}, close_code={self.close_code})"


class ChannelAdapter(Protocol):
	"""Transport contract used by the session orchestrator."""

	def open(self, request: GenerationRequest, params: Dict[str, Any], on_event: EventCallback) -> ChannelHandle:
		...

	def cancel(self, handle: Optional[ChannelHandle]) -> None:
		...


class StreamingChannel:
	"""Run a producer as an asyncio task and forward its events in order.

	The producer yields ``Token``/``Replace``/``Log`` events; the channel
	appends the terminal event itself: ``Done`` when the producer is
	exhausted, ``Failed`` when it raises and ``Cancelled`` on ``cancel``.
	Nothing is delivered for a handle after its terminal event.
	"""

	def __init__(self, producer: Producer) -> None:
		self._producer = producer
		self._active: Optional[ChannelHandle] = None

	@property
	def active(self) -> Optional[ChannelHandle]:
		if self._active is not None and self._active.closed:
			self._active = None
		return self._active

	def open(self, request: GenerationRequest, params: Dict[str, Any], on_event: EventCallback) -> ChannelHandle:
		"""Start streaming ``request``; must be called from a running event loop."""
		if self.active is not None:
			raise ChannelBusyError(f"Channel already streaming {self._active!r}")
		handle = ChannelHandle(request, on_event)
		self._active = handle
		handle._task = asyncio.get_running_loop().create_task(self._pump(handle, params))
		LOGGER.info("Opened %s", handle)
		return handle

	def cancel(self, handle: Optional[ChannelHandle]) -> None:
		"""Stop ``handle``; a no-op when it already finished."""
		if handle is None or handle.closed:
			return
		self._finish(handle, USER_CLOSE_CODE, Cancelled())
		task = handle._task
		if task is not None and not task.done() and task is not asyncio.current_task():
			task.cancel()

	async def _pump(self, handle: ChannelHandle, params: Dict[str, Any]) -> None:
		try:
			async with aclosing(self._producer(handle.request, params)) as events:
				async for event in events:
					if handle.closed:
						break
					if is_terminal(event):
						continue
					handle._on_event(event)
		except asyncio.CancelledError:
			self._finish(handle, USER_CLOSE_CODE, Cancelled())
			raise
		except Exception as exc:
			if handle.closed:
				return
			LOGGER.warning("Stream %s failed: %s", handle, exc, exc_info=True)
			handle._on_event(Log(f"Error: {exc}"))
			self._finish(handle, SERVER_ERROR_CLOSE_CODE, Failed(str(exc)))
			return
		self._finish(handle, NORMAL_CLOSE_CODE, Done())

	def _finish(self, handle: ChannelHandle, code: int, event: StreamEvent) -> None:
		if handle.closed:
			return
		handle.close_code = code
		if self._active is handle:
			self._active = None
		LOGGER.info("Closed %s", handle)
		handle._on_event(event)
