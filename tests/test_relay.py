from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator

import pytest

from interview_relay.llm_client import LLMClientError
from interview_relay.relay import (
    DONE_FRAME,
    STREAM_HEADERS,
    StreamRelayError,
    encode_frame,
    fallback_stream,
    relay_chunks,
)


class ScriptedStream:
    """Chunk stream that yields scripted items; exceptions are raised in place."""

    def __init__(self, items: list[str | Exception]) -> None:
        self._items = list(items)
        self.pulled = 0
        self.closed = False

    def __aiter__(self) -> AsyncIterator[str]:
        return self

    async def __anext__(self) -> str:
        if self.closed or not self._items:
            raise StopAsyncIteration
        item = self._items.pop(0)
        self.pulled += 1
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


async def _collect(stream: AsyncIterator[bytes]) -> list[bytes]:
    return [frame async for frame in stream]


def collect(stream: AsyncIterator[bytes]) -> list[bytes]:
    return asyncio.run(_collect(stream))


def test_encode_frame_is_json_string_line() -> None:
    assert encode_frame("Hello") == b'0:"Hello"\n'
    assert encode_frame('say "hi"\nnow') == b'0:"say \\"hi\\"\\nnow"\n'
    assert encode_frame("café") == '0:"café"\n'.encode("utf-8")
    assert DONE_FRAME == b'0:"__DONE__"\n'


def test_relay_frames_chunks_in_order_then_done() -> None:
    upstream = ScriptedStream(["Hello", " world"])
    frames = collect(relay_chunks(upstream, fallback_text="sorry"))

    assert b"".join(frames) == b'0:"Hello"\n0:" world"\n0:"__DONE__"\n'
    assert upstream.closed


def test_relay_skips_empty_chunks() -> None:
    frames = collect(relay_chunks(ScriptedStream(["", "a", "", "b"]), fallback_text="sorry"))
    assert frames == [b'0:"a"\n', b'0:"b"\n', DONE_FRAME]


def test_relay_empty_source_emits_only_done() -> None:
    assert collect(relay_chunks(ScriptedStream([]), fallback_text="sorry")) == [DONE_FRAME]


def test_relay_falls_back_when_upstream_fails_before_first_frame() -> None:
    upstream = ScriptedStream(["", LLMClientError("quota exceeded")])
    frames = collect(relay_chunks(upstream, fallback_text="Try again later."))

    assert frames == [b'0:"Try again later."\n', DONE_FRAME]
    assert upstream.closed


def test_relay_raises_when_upstream_fails_mid_stream() -> None:
    upstream = ScriptedStream(["Hello", LLMClientError("connection reset")])
    received: list[bytes] = []

    async def consume() -> None:
        async for frame in relay_chunks(upstream, fallback_text="sorry"):
            received.append(frame)

    with pytest.raises(StreamRelayError) as exc:
        asyncio.run(consume())

    assert received == [b'0:"Hello"\n']
    assert exc.value.frames_emitted == 1
    assert isinstance(exc.value.__cause__, LLMClientError)
    assert upstream.closed


def test_relay_does_not_swallow_unexpected_errors() -> None:
    upstream = ScriptedStream([RuntimeError("bug")])
    with pytest.raises(RuntimeError, match="bug"):
        collect(relay_chunks(upstream, fallback_text="sorry"))
    assert upstream.closed


def test_relay_closes_upstream_when_consumer_stops_early() -> None:
    upstream = ScriptedStream(["one", "two", "three"])

    async def read_one_then_close() -> bytes:
        relay = relay_chunks(upstream, fallback_text="sorry")
        first = await relay.__anext__()
        await relay.aclose()
        return first

    assert asyncio.run(read_one_then_close()) == b'0:"one"\n'
    assert upstream.closed
    assert upstream.pulled == 1


def test_relay_closes_async_generator_upstream() -> None:
    state = {"finalized": False}

    async def upstream() -> AsyncGenerator[str, None]:
        try:
            yield "one"
            yield "two"
        finally:
            state["finalized"] = True

    async def read_one_then_close() -> None:
        relay = relay_chunks(upstream(), fallback_text="sorry")
        await relay.__anext__()
        await relay.aclose()

    asyncio.run(read_one_then_close())
    assert state["finalized"]


def test_fallback_stream_has_two_frames() -> None:
    assert collect(fallback_stream("oops")) == [b'0:"oops"\n', DONE_FRAME]


def test_stream_headers_declare_protocol_version() -> None:
    assert STREAM_HEADERS["Cache-Control"] == "no-cache"
    assert STREAM_HEADERS["Connection"] == "keep-alive"
    assert STREAM_HEADERS["x-vercel-ai-data-stream"] == "v1"
