"""Tests for the streaming channel adapter."""
import pytest

from conftest import ScriptedProducer, settle
from models.generation_models import Cancelled, CreateRequest, Done, Failed, Log, Replace, Token
from services.realtime.channel import (
    NORMAL_CLOSE_CODE,
    SERVER_ERROR_CLOSE_CODE,
    USER_CLOSE_CODE,
    StreamingChannel,
)
from services.realtime.errors import ChannelBusyError


async def test_events_are_delivered_in_order_then_done():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    handle = channel.open(CreateRequest(image="img1"), {"image": "img1"}, received.append)
    producer.push(Token("<ht"), Token("ml>"), Replace("<html></html>"))
    producer.finish()
    await settle()

    assert received == [Token("<ht"), Token("ml>"), Replace("<html></html>"), Done()]
    assert handle.close_code == NORMAL_CLOSE_CODE
    assert channel.active is None
    assert producer.calls[0][1] == {"image": "img1"}


async def test_cancel_delivers_cancelled_once_and_is_idempotent():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    handle = channel.open(CreateRequest(image="img1"), {}, received.append)
    producer.push(Token("<h"))
    await settle()

    channel.cancel(handle)
    channel.cancel(handle)
    producer.push(Token("late"))
    await settle()

    assert received == [Token("<h"), Cancelled()]
    assert handle.close_code == USER_CLOSE_CODE
    assert handle.cancelled_by_user


async def test_cancel_after_completion_is_a_noop():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    handle = channel.open(CreateRequest(image="img1"), {}, received.append)
    producer.finish()
    await settle()
    channel.cancel(handle)
    channel.cancel(None)

    assert received == [Done()]
    assert handle.close_code == NORMAL_CLOSE_CODE


async def test_cancel_before_stream_starts():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    handle = channel.open(CreateRequest(image="img1"), {}, received.append)
    channel.cancel(handle)
    await settle()

    assert received == [Cancelled()]


async def test_producer_failure_is_logged_and_terminal():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    handle = channel.open(CreateRequest(image="img1"), {}, received.append)
    producer.push(Token("<h"))
    producer.fail(ConnectionError("connection dropped"))
    await settle()

    assert received == [Token("<h"), Log("Error: connection dropped"), Failed("connection dropped")]
    assert handle.close_code == SERVER_ERROR_CLOSE_CODE


async def test_second_open_while_streaming_is_refused():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    first = channel.open(CreateRequest(image="img1"), {}, lambda event: None)

    with pytest.raises(ChannelBusyError):
        channel.open(CreateRequest(image="img2"), {}, lambda event: None)

    channel.cancel(first)
    second = channel.open(CreateRequest(image="img2"), {}, lambda event: None)
    assert channel.active is second
    channel.cancel(second)
    await settle()


async def test_terminal_events_from_producer_are_not_forwarded():
    producer = ScriptedProducer()
    channel = StreamingChannel(producer)
    received = []

    channel.open(CreateRequest(image="img1"), {}, received.append)
    producer.push(Done(), Token("x"))
    producer.finish()
    await settle()

    assert received == [Token("x"), Done()]
