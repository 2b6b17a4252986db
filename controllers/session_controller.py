"""Session lifecycle helpers for code generation workflows."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from models.settings_models import AmbientSettings
from services.realtime.errors import SessionError
from services.realtime.orchestrator import SessionOrchestrator
from services.realtime.session_store import SessionStore
from utils.media_validation import validate_reference_image


def _get_session(request: Request, session_id: str) -> SessionOrchestrator:
	store: SessionStore = request.app.state.session_store
	try:
		return store.get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc


def start_session(request: Request, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
	"""Create a new session and return its id and initial state.

	``overrides`` holds per-user preferences (e.g. their own API key); the
	server's ambient settings fill in everything else.
	"""
	store: SessionStore = request.app.state.session_store
	settings: AmbientSettings = store.settings
	if overrides:
		settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})
	orchestrator = store.create(settings=settings)
	return orchestrator.snapshot_state()


def get_session_state(request: Request, session_id: str) -> Dict[str, Any]:
	return _get_session(request, session_id).snapshot_state()


async def create_generation(request: Request, session_id: str, images: List[str]) -> Dict[str, Any]:
	"""Start the first generation of a session from HTTP callers."""
	orchestrator = _get_session(request, session_id)
	validated = [validate_reference_image(image) for image in images]
	try:
		await orchestrator.create(validated)
	except SessionError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return orchestrator.snapshot_state()


def stop_session(request: Request, session_id: str) -> Dict[str, Any]:
	orchestrator = _get_session(request, session_id)
	orchestrator.stop()
	return orchestrator.snapshot_state()


def reset_session(request: Request, session_id: str) -> Dict[str, Any]:
	orchestrator = _get_session(request, session_id)
	orchestrator.reset()
	return orchestrator.snapshot_state()


def delete_session(request: Request, session_id: str) -> Dict[str, Any]:
	_get_session(request, session_id)
	request.app.state.session_store.discard(session_id)
	return {"session_id": session_id, "deleted": True}


def download_code(request: Request, session_id: str) -> Response:
	"""Return the current code as an ``index.html`` attachment."""
	orchestrator = _get_session(request, session_id)
	try:
		code = orchestrator.download()
	except SessionError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return Response(
		content=code,
		media_type="text/html",
		headers={"Content-Disposition": 'attachment; filename="index.html"'},
	)
