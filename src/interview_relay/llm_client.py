"""LLM provider clients.

This module defines the `ChatProvider` protocol the dispatcher depends on and
a Gemini-backed implementation of it. Both one-shot (`generateContent`) and
streamed (`streamGenerateContent` over server-sent events) calls are exposed.
"""

from __future__ import annotations

import json
import os
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from .models import FormattedTurn


class LLMClientError(RuntimeError):
    """Raised when an upstream LLM provider call fails."""


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    temperature: float = 0.7
    top_p: float = 0.8
    top_k: int = 40
    max_output_tokens: int = 1024

    def to_payload(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }


CHAT_SETTINGS = GenerationSettings(max_output_tokens=1024)
EVALUATION_SETTINGS = GenerationSettings(max_output_tokens=2048)


class ChunkStream(Protocol):
    """Lazy, finite sequence of text chunks that can be cancelled.

    Async generators satisfy this protocol.
    """

    def __aiter__(self) -> AsyncIterator[str]: ...

    async def __anext__(self) -> str: ...

    async def aclose(self) -> None: ...


class ChatProvider(Protocol):
    """Minimal interface expected by the dispatcher for LLM calls."""

    async def generate(
        self,
        *,
        history: Sequence[FormattedTurn],
        message: str,
        settings: GenerationSettings,
    ) -> str:
        """Return the full model reply to `message` after `history`."""

    def stream(
        self,
        *,
        history: Sequence[FormattedTurn],
        message: str,
        settings: GenerationSettings,
    ) -> ChunkStream:
        """Return the model reply as a lazy chunk stream.

        No network traffic happens until the first chunk is pulled.
        """


@dataclass(slots=True)
class GeminiChatClient:
    """Gemini REST client implementing `ChatProvider`.

    Environment variables (used by `from_env`):
    - `GEMINI_API_KEY` (preferred) or `GOOGLE_API_KEY`
    - `GEMINI_MODEL` (default: gemini-2.5-flash)
    - `GEMINI_API_VERSION` (default: v1beta)
    - `GEMINI_API_BASE` (default: https://generativelanguage.googleapis.com)
    - `GEMINI_TIMEOUT_SECONDS` (default: 60)

    Each call opens its own `httpx.AsyncClient`; `transport` is only set by
    tests.
    """

    api_key: str
    model: str = "gemini-2.5-flash"
    api_version: str = "v1beta"
    api_base: str = "https://generativelanguage.googleapis.com"
    timeout_seconds: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_env(cls) -> GeminiChatClient:
        """Build a client from environment variables."""
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError(
                "Missing API key. Set GEMINI_API_KEY (or GOOGLE_API_KEY) in environment."
            )

        model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        api_version = os.getenv("GEMINI_API_VERSION", "v1beta")
        api_base = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com")

        timeout_raw = os.getenv("GEMINI_TIMEOUT_SECONDS", "60")
        try:
            timeout_seconds = float(timeout_raw)
        except ValueError as err:
            raise ValueError("GEMINI_TIMEOUT_SECONDS must be numeric") from err

        return cls(
            api_key=api_key,
            model=model,
            api_version=api_version,
            api_base=api_base,
            timeout_seconds=timeout_seconds,
        )

    async def generate(
        self,
        *,
        history: Sequence[FormattedTurn],
        message: str,
        settings: GenerationSettings,
    ) -> str:
        """Call Gemini `generateContent` and return plain text output."""
        payload = self._build_payload(history=history, message=message, settings=settings)

        try:
            async with self._client() as client:
                response = await client.post(
                    self._build_url("generateContent"),
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as err:
            raise LLMClientError(f"Gemini network error: {err}") from err

        if response.status_code >= 400:
            raise LLMClientError(f"Gemini HTTP {response.status_code}: {response.text}")

        try:
            response_json = response.json()
        except json.JSONDecodeError as err:
            raise LLMClientError("Gemini returned non-JSON response") from err

        text = "\n".join(self._text_parts(response_json)).strip()
        if text == "":
            raise LLMClientError(f"Gemini response did not include text: {response_json}")
        return text

    def stream(
        self,
        *,
        history: Sequence[FormattedTurn],
        message: str,
        settings: GenerationSettings,
    ) -> ChunkStream:
        payload = self._build_payload(history=history, message=message, settings=settings)
        return self._stream_chunks(payload)

    async def _stream_chunks(self, payload: dict[str, Any]) -> AsyncGenerator[str, None]:
        """Yield text from each server-sent event of `streamGenerateContent`.

        Chunk text is passed through untouched; leading and trailing spaces
        are significant when chunks are concatenated.
        """
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    self._build_url("streamGenerateContent"),
                    params={"alt": "sse"},
                    json=payload,
                    headers=self._headers(),
                ) as response:
                    if response.status_code >= 400:
                        details = (await response.aread()).decode("utf-8", errors="replace")
                        raise LLMClientError(f"Gemini HTTP {response.status_code}: {details}")

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:") :].strip()
                        if not data:
                            continue
                        try:
                            event = json.loads(data)
                        except json.JSONDecodeError as err:
                            raise LLMClientError("Gemini stream returned non-JSON event") from err
                        if isinstance(event, dict) and "error" in event:
                            raise LLMClientError(f"Gemini stream error: {event['error']}")

                        text = "".join(self._text_parts(event))
                        if text:
                            yield text
        except httpx.HTTPError as err:
            raise LLMClientError(f"Gemini network error: {err}") from err

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

    @staticmethod
    def _build_payload(
        *,
        history: Sequence[FormattedTurn],
        message: str,
        settings: GenerationSettings,
    ) -> dict[str, Any]:
        contents = [turn.to_content() for turn in history]
        contents.append({"role": "user", "parts": [{"text": message}]})
        return {"contents": contents, "generationConfig": settings.to_payload()}

    def _build_url(self, method: str) -> str:
        normalized_base = self.api_base.rstrip("/")
        model_name = self.model
        if model_name.startswith("models/"):
            model_name = model_name.split("/", maxsplit=1)[1]
        return f"{normalized_base}/{self.api_version}/models/{model_name}:{method}"

    @staticmethod
    def _text_parts(response_json: Any) -> list[str]:
        """Return the text parts of the first candidate that has any."""
        if not isinstance(response_json, dict):
            return []
        candidates = response_json.get("candidates")
        if not isinstance(candidates, list):
            return []

        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            content = candidate.get("content")
            if not isinstance(content, dict):
                continue
            parts = content.get("parts")
            if not isinstance(parts, list):
                continue

            text_chunks: list[str] = []
            for part in parts:
                if isinstance(part, dict):
                    text_value = part.get("text")
                    if isinstance(text_value, str):
                        text_chunks.append(text_value)

            if text_chunks:
                return text_chunks

        return []
