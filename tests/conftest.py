"""Pytest configuration and fixtures."""
import asyncio
import base64
import io
from typing import List, Optional, Tuple

import pytest
from PIL import Image

from models.generation_models import Cancelled, Done, StreamEvent, Token, is_terminal
from models.settings_models import AmbientSettings
from services.realtime.channel import USER_CLOSE_CODE, ChannelHandle
from services.realtime.orchestrator import SessionOrchestrator
from services.realtime.snapshot import LatestSnapshot


def pytest_configure(config):
    """Ensure asyncio_mode is auto so async tests run without markers."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"


class FakeChannel:
    """Channel double that lets a test deliver stream events by hand."""

    def __init__(self) -> None:
        self.opened: List[Tuple[ChannelHandle, dict]] = []
        self.cancelled: List[ChannelHandle] = []

    def open(self, request, params, on_event) -> ChannelHandle:
        handle = ChannelHandle(request, on_event)
        self.opened.append((handle, params))
        return handle

    def cancel(self, handle: Optional[ChannelHandle]) -> None:
        if handle is None or handle.closed:
            return
        handle.close_code = USER_CLOSE_CODE
        self.cancelled.append(handle)
        handle._on_event(Cancelled())

    @property
    def last_handle(self) -> ChannelHandle:
        return self.opened[-1][0]

    @property
    def last_params(self) -> dict:
        return self.opened[-1][1]

    def emit(self, *events: StreamEvent, handle: Optional[ChannelHandle] = None) -> None:
        handle = handle or self.last_handle
        for event in events:
            if is_terminal(event):
                handle.close_code = 1000
            handle._on_event(event)


class ScriptedProducer:
    """Producer fed from a queue so tests control when each event is yielded."""

    _END = object()

    def __init__(self) -> None:
        self.queue: "asyncio.Queue" = asyncio.Queue()
        self.calls: List[Tuple[object, dict]] = []

    def push(self, *events: StreamEvent) -> None:
        for event in events:
            self.queue.put_nowait(event)

    def finish(self) -> None:
        self.queue.put_nowait(self._END)

    def fail(self, exc: Exception) -> None:
        self.queue.put_nowait(exc)

    async def __call__(self, request, params):
        self.calls.append((request, params))
        while True:
            item = await self.queue.get()
            if item is self._END:
                return
            if isinstance(item, Exception):
                raise item
            yield item


async def settle(rounds: int = 10) -> None:
    """Let scheduled stream tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_png_data_url(size=(4, 4), color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("utf-8")


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def settings() -> AmbientSettings:
    return AmbientSettings(openai_api_key="sk-ambient", is_image_generation_enabled=False)


@pytest.fixture
def snapshot() -> LatestSnapshot:
    return LatestSnapshot()


@pytest.fixture
def orchestrator(fake_channel, settings, snapshot) -> SessionOrchestrator:
    return SessionOrchestrator(channel=fake_channel, settings=settings, snapshot=snapshot)


@pytest.fixture
async def ready_orchestrator(orchestrator, fake_channel) -> SessionOrchestrator:
    """Session that finished generating ``<html>A</html>``."""
    await orchestrator.create(["img1"])
    fake_channel.emit(Token("<html>A</html>"), Done())
    return orchestrator
