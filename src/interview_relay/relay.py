"""Line-delimited framing of provider token streams.

Wire format, one frame per line::

    0:"<json-escaped text>"\\n

A stream always ends with the `0:"__DONE__"` frame unless the upstream fails
after frames were already flushed. In that case the generator raises and the
ASGI server aborts the response, so the consumer can detect truncation.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator

import anyio

from .llm_client import ChunkStream, LLMClientError

logger = logging.getLogger("interview_relay.relay")

TEXT_FRAME_TAG = "0"
DONE_SENTINEL = "__DONE__"
LEGACY_DONE_SENTINEL = "[DONE]"

STREAM_MEDIA_TYPE = "text/event-stream"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "x-vercel-ai-data-stream": "v1",
}


class StreamRelayError(RuntimeError):
    """Raised when the upstream fails after frames reached the client."""

    def __init__(self, *, frames_emitted: int, cause: str) -> None:
        super().__init__(f"Upstream stream failed after {frames_emitted} frames: {cause}")
        self.frames_emitted = frames_emitted


def encode_frame(text: str, tag: str = TEXT_FRAME_TAG) -> bytes:
    """Encode one frame. Non-ASCII text is kept as UTF-8, not escaped."""
    return f"{tag}:{json.dumps(text, ensure_ascii=False)}\n".encode("utf-8")


DONE_FRAME = encode_frame(DONE_SENTINEL)


async def relay_chunks(
    chunks: ChunkStream,
    *,
    fallback_text: str,
) -> AsyncGenerator[bytes, None]:
    """Frame `chunks` in source order and terminate with `DONE_FRAME`.

    Empty chunks produce no frame. If the provider fails before any frame was
    emitted, `fallback_text` is framed instead and the stream still closes
    cleanly. `chunks` is always closed on exit, including when the consumer
    stops reading early.
    """
    emitted = 0
    try:
        async for chunk in chunks:
            if not chunk:
                continue
            yield encode_frame(chunk)
            emitted += 1
    except LLMClientError as err:
        if emitted:
            logger.error(
                "relay_aborted",
                extra={"frames_emitted": emitted, "error": str(err)},
            )
            raise StreamRelayError(frames_emitted=emitted, cause=str(err)) from err

        logger.warning("relay_fallback", extra={"error": str(err)})
        yield encode_frame(fallback_text)
    finally:
        # The consumer may be gone and the task cancelled; upstream must
        # still be released.
        with anyio.CancelScope(shield=True):
            await chunks.aclose()

    logger.info("relay_complete", extra={"frames_emitted": emitted})
    yield DONE_FRAME


async def fallback_stream(text: str) -> AsyncGenerator[bytes, None]:
    """Two-frame stream carrying `text` followed by the done sentinel."""
    yield encode_frame(text)
    yield DONE_FRAME
