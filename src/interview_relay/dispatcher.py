"""
Request dispatch between the streaming chat path and the evaluation path.

This module wires together:
1) Mode detection (evaluation trigger present or not).
2) Conversation shaping and instruction selection.
3) Provider invocation through the injected `ChatProvider`.
4) Either the framed streaming relay or the evaluation parser.

Provider failures never escape as exceptions: the chat path falls back to a
two-frame apology stream and the evaluation path to an apology string.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from uuid import uuid4

from .conversation import is_evaluation_request, plan_chat_turn, plan_evaluation
from .evaluation import parse_evaluation
from .llm_client import CHAT_SETTINGS, EVALUATION_SETTINGS, ChatProvider, GenerationSettings, LLMClientError
from .models import ChatRequest, EvaluationResponse, Message
from .prompts import CHAT_FALLBACK_TEXT, EVALUATION_FALLBACK_TEXT
from .relay import fallback_stream, relay_chunks

FramedStream = AsyncIterator[bytes]


def _truncate(text: str, max_len: int = 2000) -> str:
    return text if len(text) <= max_len else (text[:max_len] + "...[truncated]")


class ChatDispatcher:
    """Routes one chat request to streaming or evaluation mode."""

    def __init__(
        self,
        *,
        provider: ChatProvider,
        logger: logging.Logger | None = None,
        chat_settings: GenerationSettings = CHAT_SETTINGS,
        evaluation_settings: GenerationSettings = EVALUATION_SETTINGS,
        max_output_preview_chars: int = 500,
    ) -> None:
        self.provider = provider
        self.logger = logger or logging.getLogger("interview_relay.dispatcher")
        self.chat_settings = chat_settings
        self.evaluation_settings = evaluation_settings
        self.max_output_preview_chars = max_output_preview_chars

    async def dispatch(self, request: ChatRequest) -> EvaluationResponse | FramedStream:
        """Return an evaluation body, or the framed byte stream for a chat turn."""
        request_id = str(uuid4())
        evaluation = is_evaluation_request(request.messages)

        self.logger.info(
            "chat_request",
            extra={
                "request_id": request_id,
                "message_count": len(request.messages),
                "evaluation": evaluation,
            },
        )

        if evaluation:
            return await self.evaluate(request.messages, request_id=request_id)
        return self.stream_reply(request.messages, request_id=request_id)

    async def evaluate(
        self,
        messages: Sequence[Message],
        *,
        request_id: str | None = None,
    ) -> EvaluationResponse:
        plan = plan_evaluation(messages)

        try:
            raw_output = await self.provider.generate(
                history=plan.history,
                message=plan.instruction,
                settings=self.evaluation_settings,
            )
        except LLMClientError as err:
            self.logger.warning(
                "evaluation_failed",
                extra={"request_id": request_id, "error": str(err)},
            )
            return EvaluationResponse(response=EVALUATION_FALLBACK_TEXT)

        self.logger.info(
            "evaluation_response",
            extra={
                "request_id": request_id,
                "history_length": len(plan.history),
                "raw_output_preview": _truncate(raw_output, self.max_output_preview_chars),
            },
        )
        return EvaluationResponse(response=parse_evaluation(raw_output))

    def stream_reply(
        self,
        messages: Sequence[Message],
        *,
        request_id: str | None = None,
    ) -> FramedStream:
        """Start the next interviewer turn and return its framed stream.

        The provider stream is lazy, so nothing is sent upstream until the
        caller starts iterating.
        """
        plan = plan_chat_turn(messages)

        self.logger.info(
            "chat_turn",
            extra={
                "request_id": request_id,
                "history_length": len(plan.history),
                "exchange_count": plan.exchange_count,
                "should_end_interview": plan.should_end_interview,
            },
        )

        try:
            chunks = self.provider.stream(
                history=plan.history,
                message=plan.instruction,
                settings=self.chat_settings,
            )
        except LLMClientError as err:
            self.logger.warning(
                "chat_stream_failed",
                extra={"request_id": request_id, "error": str(err)},
            )
            return fallback_stream(CHAT_FALLBACK_TEXT)

        return relay_chunks(chunks, fallback_text=CHAT_FALLBACK_TEXT)
