"""Conversation shaping: message filtering, turn formatting and exchange counting.

The client resends the whole conversation on every request. This module turns
that list into what the provider's chat session expects and decides which
instruction the interviewer receives next.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .models import FormattedTurn, Message
from .prompts import (
    EVALUATION_INSTRUCTION,
    EVALUATION_TRIGGER,
    INTRODUCTION_INSTRUCTION,
    MAX_EXCHANGES,
    PREAMBLE_ACKNOWLEDGEMENT,
    PREAMBLE_INSTRUCTION,
    TERMINATION_INSTRUCTION,
    follow_up_instruction,
)


@dataclass(frozen=True)
class ChatTurnPlan:
    """Everything needed to request the next interviewer turn."""

    history: list[FormattedTurn]
    instruction: str
    exchange_count: int
    should_end_interview: bool


@dataclass(frozen=True)
class EvaluationPlan:
    history: list[FormattedTurn]
    instruction: str


def content_to_text(content: Any) -> str:
    """Return message content as text, serialising non-string values."""
    if isinstance(content, str):
        return content
    try:
        return json.dumps(content, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(content)


def is_evaluation_request(messages: Sequence[Message]) -> bool:
    """True when any user message carries the evaluation trigger.

    This is a substring test: trigger text inside a longer message counts.
    """
    return any(
        message.role == "user"
        and isinstance(message.content, str)
        and EVALUATION_TRIGGER in message.content
        for message in messages
    )


def filter_messages(messages: Sequence[Message], *, evaluation: bool) -> list[Message]:
    """Drop system messages and, for evaluations, the bare trigger message."""
    return [
        message
        for message in messages
        if message.role != "system"
        and not (evaluation and message.content == EVALUATION_TRIGGER)
    ]


def format_turns(messages: Sequence[Message]) -> list[FormattedTurn]:
    return [
        FormattedTurn(
            role="user" if message.role == "user" else "model",
            parts=[content_to_text(message.content)],
        )
        for message in messages
    ]


def with_preamble(turns: Sequence[FormattedTurn]) -> list[FormattedTurn]:
    """Prepend the interviewer instruction pair to a non-empty history.

    An empty history is returned as-is so the chat session starts fresh.
    """
    if not turns:
        return []
    return [
        FormattedTurn(role="user", parts=[PREAMBLE_INSTRUCTION]),
        FormattedTurn(role="model", parts=[PREAMBLE_ACKNOWLEDGEMENT]),
        *turns,
    ]


def count_exchanges(messages: Sequence[Message]) -> int:
    """Count candidate turns after the first (setup) message.

    `messages` must already be filtered. Histories of two entries or fewer
    mean the interview has not started yet.
    """
    if len(messages) <= 2:
        return 0
    return sum(1 for index, message in enumerate(messages) if index > 0 and message.role == "user")


def should_end_interview(exchange_count: int) -> bool:
    return exchange_count >= MAX_EXCHANGES


def select_instruction(*, history_length: int, exchange_count: int, end_interview: bool) -> str:
    """Pick the instruction appended to a chat turn.

    Priority: forced termination, then introduction for an empty or
    single-message history, then a numbered follow-up.
    """
    if end_interview:
        return TERMINATION_INSTRUCTION
    if history_length <= 1:
        return INTRODUCTION_INSTRUCTION
    return follow_up_instruction(exchange_count)


def plan_chat_turn(messages: Sequence[Message]) -> ChatTurnPlan:
    filtered = filter_messages(messages, evaluation=False)
    exchange_count = count_exchanges(filtered)
    end_interview = should_end_interview(exchange_count)
    return ChatTurnPlan(
        history=with_preamble(format_turns(filtered)),
        instruction=select_instruction(
            history_length=len(filtered),
            exchange_count=exchange_count,
            end_interview=end_interview,
        ),
        exchange_count=exchange_count,
        should_end_interview=end_interview,
    )


def plan_evaluation(messages: Sequence[Message]) -> EvaluationPlan:
    filtered = filter_messages(messages, evaluation=True)
    return EvaluationPlan(history=format_turns(filtered), instruction=EVALUATION_INSTRUCTION)
