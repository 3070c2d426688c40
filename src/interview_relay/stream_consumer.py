"""Reading the framed chat stream from the consumer side.

Mirrors what the browser does with a relay response: decode text frames,
stop at the done sentinel, and strip reserved markers before display.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator

from .prompts import END_INTERVIEW_MARKER
from .relay import DONE_SENTINEL, LEGACY_DONE_SENTINEL, TEXT_FRAME_TAG

_SENTINELS = frozenset({DONE_SENTINEL, LEGACY_DONE_SENTINEL})
_SENTINEL_RE = re.compile(r'"\[DONE\]"|"__DONE__"|\[DONE\]|__DONE__')


class FrameDecodeError(ValueError):
    """Raised when a text frame does not carry a JSON string."""


def decode_frame(line: str | bytes) -> str | None:
    """Return the text carried by one frame, or None for non-text lines."""
    if isinstance(line, bytes):
        line = line.decode("utf-8")
    line = line.rstrip("\r\n")
    tag, sep, payload = line.partition(":")
    if not sep or tag != TEXT_FRAME_TAG:
        return None
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as err:
        raise FrameDecodeError(f"Malformed frame payload: {payload!r}") from err
    if not isinstance(value, str):
        raise FrameDecodeError(f"Frame payload is not a string: {payload!r}")
    return value


def iter_stream_text(lines: Iterable[str | bytes]) -> Iterator[str]:
    """Yield text fragments until a done sentinel frame arrives."""
    for line in lines:
        text = decode_frame(line)
        if text is None:
            continue
        if text in _SENTINELS:
            return
        yield text


def clean_display_text(text: str) -> str:
    """Remove stream sentinels and the end-of-interview marker."""
    text = text.replace(END_INTERVIEW_MARKER, "")
    return _SENTINEL_RE.sub("", text).strip()


def is_interview_over(text: str) -> bool:
    return END_INTERVIEW_MARKER in text
