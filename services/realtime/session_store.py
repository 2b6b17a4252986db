"""Simple in-memory store for generation sessions."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from models.settings_models import AmbientSettings
from services.realtime.channel import ChannelAdapter
from services.realtime.orchestrator import SessionOrchestrator
from services.realtime.snapshot import LatestSnapshot

LOGGER = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 30 * 60


class SessionStore:
	"""Manage live sessions; each session gets its own channel and snapshot slot.

	A session is dropped when its last websocket disconnects. Sessions that
	never get a websocket (or whose socket is long gone) are evicted once they
	sit idle for ``idle_timeout`` seconds without a running stream.
	"""

	def __init__(
		self,
		channel_factory: Callable[[], ChannelAdapter],
		settings: Optional[AmbientSettings] = None,
		idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		self.channel_factory = channel_factory
		self.settings = settings or AmbientSettings()
		self.idle_timeout = idle_timeout
		self._clock = clock
		self._sessions: Dict[str, SessionOrchestrator] = {}
		self._last_seen: Dict[str, float] = {}
		self._connections: Dict[str, int] = {}

	def create(self, settings: Optional[AmbientSettings] = None) -> SessionOrchestrator:
		"""Create a new session in the initial phase."""
		self.evict_idle()
		orchestrator = SessionOrchestrator(
			channel=self.channel_factory(),
			settings=settings or self.settings,
			snapshot=LatestSnapshot(),
		)
		self._sessions[orchestrator.session_id] = orchestrator
		self._last_seen[orchestrator.session_id] = self._clock()
		LOGGER.info("Created session %s", orchestrator.session_id)
		return orchestrator

	def get(self, session_id: str) -> SessionOrchestrator:
		"""Return a session or raise KeyError if missing."""
		orchestrator = self._sessions.get(session_id)
		if orchestrator is None:
			raise KeyError(f"Session {session_id} not found")
		self._last_seen[session_id] = self._clock()
		return orchestrator

	def connect(self, session_id: str) -> SessionOrchestrator:
		"""Register a websocket for the session and return it."""
		orchestrator = self.get(session_id)
		self._connections[session_id] = self._connections.get(session_id, 0) + 1
		return orchestrator

	def disconnect(self, session_id: str) -> None:
		"""Release a websocket; the last one to leave discards the session."""
		remaining = self._connections.get(session_id, 0) - 1
		if remaining > 0:
			self._connections[session_id] = remaining
			return
		self._connections.pop(session_id, None)
		self.discard(session_id)

	def evict_idle(self) -> int:
		"""Discard unconnected, non-streaming sessions idle past the timeout."""
		now = self._clock()
		expired = [
			session_id
			for session_id, orchestrator in self._sessions.items()
			if not self._connections.get(session_id)
			and not orchestrator.machine.is_active
			and now - self._last_seen.get(session_id, now) >= self.idle_timeout
		]
		for session_id in expired:
			LOGGER.info("Evicting idle session %s", session_id)
			self.discard(session_id)
		return len(expired)

	def discard(self, session_id: str) -> None:
		"""Stop any stream and forget the session."""
		orchestrator = self._sessions.pop(session_id, None)
		self._last_seen.pop(session_id, None)
		self._connections.pop(session_id, None)
		if orchestrator is not None:
			orchestrator.reset()
			LOGGER.info("Discarded session %s", session_id)

	def close_all(self) -> None:
		for session_id in list(self._sessions):
			self.discard(session_id)

	def __len__(self) -> int:
		return len(self._sessions)
