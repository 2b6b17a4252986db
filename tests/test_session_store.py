"""Tests for session registration, websocket bookkeeping and idle eviction."""
import pytest

from conftest import FakeChannel
from models.settings_models import AmbientSettings
from services.realtime.session_store import SessionStore


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    return SessionStore(FakeChannel, AmbientSettings(openai_api_key="sk-test"), idle_timeout=60, clock=clock)


def test_last_disconnect_discards_session(store):
    session_id = store.create().session_id
    store.connect(session_id)
    store.connect(session_id)

    store.disconnect(session_id)
    assert len(store) == 1

    store.disconnect(session_id)
    assert len(store) == 0
    with pytest.raises(KeyError):
        store.get(session_id)


def test_connect_unknown_session_raises(store):
    with pytest.raises(KeyError):
        store.connect("missing")


async def test_discard_cancels_running_stream(store):
    orchestrator = store.create()
    await orchestrator.create(["img"])
    handle = orchestrator.channel.last_handle
    store.connect(orchestrator.session_id)

    store.disconnect(orchestrator.session_id)

    assert handle.cancelled_by_user
    assert len(store) == 0


def test_idle_sessions_are_evicted(store, clock):
    idle = store.create().session_id
    clock.now = 30
    recent = store.create().session_id
    clock.now = 61

    assert store.evict_idle() == 1
    with pytest.raises(KeyError):
        store.get(idle)
    assert store.get(recent).session_id == recent


async def test_connected_or_streaming_sessions_are_kept(store, clock):
    connected = store.create().session_id
    store.connect(connected)
    streaming = store.create()
    await streaming.create(["img"])
    clock.now = 3600

    assert store.evict_idle() == 0
    assert len(store) == 2


def test_get_refreshes_activity(store, clock):
    session_id = store.create().session_id
    clock.now = 50
    store.get(session_id)
    clock.now = 100

    store.create()

    assert store.get(session_id).session_id == session_id
    assert len(store) == 2
