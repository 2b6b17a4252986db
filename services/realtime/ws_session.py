"""Dispatch realtime websocket events to session operations."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, WebSocket

from services.realtime.orchestrator import SessionOrchestrator
from services.realtime.snapshot import LatestSnapshot
from utils.media_validation import validate_reference_image

LOGGER = logging.getLogger(__name__)


class RealtimeSessionHandler:
	"""Route websocket messages for a single generation session and publish its state."""

	def __init__(self, orchestrator: SessionOrchestrator) -> None:
		self.orchestrator = orchestrator
		self._outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
		self._sender: Optional[asyncio.Task] = None
		self._unsubscribe = None

	def attach(self, websocket: WebSocket) -> None:
		"""Start forwarding session changes to ``websocket``."""
		self._unsubscribe = self.orchestrator.subscribe(self._publish)
		self._sender = asyncio.get_running_loop().create_task(self._drain(websocket))

	async def detach(self) -> None:
		if self._unsubscribe is not None:
			self._unsubscribe()
			self._unsubscribe = None
		if self._sender is not None:
			self._outbox.put_nowait(None)
			await self._sender
			self._sender = None

	def _publish(self, state: Dict[str, Any]) -> None:
		self._outbox.put_nowait({"type": "session.state", "state": state})

	async def _drain(self, websocket: WebSocket) -> None:
		while True:
			payload = await self._outbox.get()
			if payload is None:
				return
			try:
				await self._send(websocket, payload)
			except Exception as exc:
				LOGGER.warning("Dropping state update for %s: %s", self.orchestrator.session_id, exc)

	async def handle(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			result = await self._dispatch(message_type, payload)
			if result is not None:
				result["request_id"] = request_id
				await self._send(websocket, result)
		except HTTPException as exc:
			await self._send_error(websocket, request_id, str(exc.detail))
		except Exception as exc:
			await self._send_error(websocket, request_id, str(exc))

	async def _dispatch(self, message_type: Optional[str], payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
		orchestrator = self.orchestrator
		if message_type == "session.create":
			images = [validate_reference_image(image) for image in payload.get("images") or []]
			started = await orchestrator.create(images)
			return self._ack(message_type, started=started)
		if message_type == "session.update":
			await orchestrator.update()
			return self._ack(message_type)
		if message_type == "instruction.generate":
			await orchestrator.generate_instruction()
			return self._ack(message_type)
		if message_type == "session.stop":
			stopped = orchestrator.stop()
			return self._ack(message_type, stopped=stopped)
		if message_type == "session.reset":
			orchestrator.reset()
			return self._ack(message_type)
		if message_type == "instruction.set":
			orchestrator.set_pending_instruction(payload.get("text") or "")
			return self._ack(message_type)
		if message_type == "result_image.toggle":
			orchestrator.set_include_result_image(bool(payload.get("include")))
			return self._ack(message_type)
		if message_type == "code.edit":
			orchestrator.edit_output_buffer(payload.get("code") or "")
			return self._ack(message_type)
		if message_type == "snapshot.update":
			self._store_snapshot(payload.get("image"))
			return self._ack(message_type)
		if message_type == "session.state":
			return {"type": "session.state", "state": orchestrator.snapshot_state()}
		raise ValueError("Unsupported message type.")

	def _store_snapshot(self, image: Optional[str]) -> None:
		"""Keep the latest preview screenshot for update and instruction requests."""
		snapshot = self.orchestrator.snapshot
		if not isinstance(snapshot, LatestSnapshot):
			raise RuntimeError("Session does not accept pushed snapshots.")
		snapshot.update(validate_reference_image(image) if image else "")

	def _ack(self, message_type: str, **extra: Any) -> Dict[str, Any]:
		return {"type": f"{message_type}.ack", "phase": self.orchestrator.phase.value, **extra}

	async def _send_error(self, websocket: WebSocket, request_id: Any, detail: str) -> None:
		await self._send(websocket, {"type": "error", "request_id": request_id, "detail": detail})

	async def _send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		await websocket.send_text(json.dumps(payload))
