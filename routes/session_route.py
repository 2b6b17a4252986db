"""FastAPI routes for generation sessions and reference screenshots."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.session_controller import (
	create_generation,
	delete_session,
	download_code,
	get_session_state,
	reset_session,
	start_session,
	stop_session,
)
from services.screenshot import ScreenshotService

router = APIRouter()


class StartPayload(BaseModel):
	openai_api_key: Optional[str] = None
	is_image_generation_enabled: Optional[bool] = None
	editor_theme: Optional[str] = None


class CreatePayload(BaseModel):
	images: List[str]


class ScreenshotPayload(BaseModel):
	url: str
	api_key: Optional[str] = None


@router.post("/sessions")
async def start_session_route(request: Request, payload: Optional[StartPayload] = None):
	overrides = payload.model_dump() if payload else None
	return start_session(request, overrides)


@router.get("/sessions/{session_id}")
async def get_session_route(request: Request, session_id: str):
	return get_session_state(request, session_id)


@router.post("/sessions/{session_id}/create")
async def create_generation_route(request: Request, session_id: str, payload: CreatePayload):
	return await create_generation(request, session_id, payload.images)


@router.post("/sessions/{session_id}/stop")
async def stop_session_route(request: Request, session_id: str):
	return stop_session(request, session_id)


@router.post("/sessions/{session_id}/reset")
async def reset_session_route(request: Request, session_id: str):
	return reset_session(request, session_id)


@router.delete("/sessions/{session_id}")
async def delete_session_route(request: Request, session_id: str):
	return delete_session(request, session_id)


@router.get("/sessions/{session_id}/download")
async def download_route(request: Request, session_id: str):
	return download_code(request, session_id)


@router.post("/screenshots")
async def screenshot_route(request: Request, payload: ScreenshotPayload):
	"""Capture a URL so it can be used as a reference image."""
	api_key = payload.api_key or request.app.state.settings.screenshot_one_api_key
	service = ScreenshotService(api_key, client=getattr(request.app.state, "http_client", None))
	try:
		image = await service.capture(payload.url)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc))
	except Exception as exc:
		raise HTTPException(status_code=502, detail=str(exc))
	return {"url": payload.url, "image": image}
