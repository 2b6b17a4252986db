"""WebSocket endpoint driving one code generation session."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.session_store import SessionStore
from services.realtime.ws_session import RealtimeSessionHandler

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Handle generation, refinement and stop requests over one websocket."""
	await websocket.accept()
	try:
		orchestrator = store.connect(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = RealtimeSessionHandler(orchestrator)
	handler.attach(websocket)
	await websocket.send_text(json.dumps({"type": "session.state", "state": orchestrator.snapshot_state()}))
	while True:
		try:
			raw = await websocket.receive_text()
		except WebSocketDisconnect:
			break
		except Exception:
			await websocket.send_text(json.dumps({"type": "error", "detail": "Invalid websocket frame"}))
			continue
		try:
			payload = json.loads(raw)
		except Exception:
			await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
			continue
		await handler.handle(websocket, payload)
	# A closed browser tab must not leave a stream running.
	orchestrator.stop()
	await handler.detach()
	store.disconnect(session_id)
	try:
		await websocket.close()
	except Exception:
		pass
