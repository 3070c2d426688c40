"""Data contracts for the interview relay.

Two kinds of payloads cross the relay boundary:

1. Client payloads (`ChatRequest` / `Message`), resent wholesale on every
   turn by the browser. These are accepted loosely: unknown keys from the
   client SDK are ignored and message content of any JSON type is allowed.
2. Model payloads (`EvaluationResult`), produced by the evaluator prompt.
   Prompts are "soft" constraints, so the result is validated here and
   degrades to `RawEvaluation` when the model drifts.

Wire names are camelCase (what the browser reads); Python attributes are
snake_case. Always dump with `by_alias=True` when serialising for clients.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ContractModel(BaseModel):
    """Shared behavior for all contracts.

    `extra="ignore"`:
    - Client libraries attach bookkeeping keys (`id`, `createdAt`) to messages.
    - Models occasionally add commentary keys next to the requested ones.

    `populate_by_name=True` lets tests and internal code build models with
    snake_case names while the wire stays camelCase.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Message(ContractModel):
    """One role-tagged turn as sent by the client."""

    role: str = Field(min_length=1)
    content: Any = ""


class ChatRequest(ContractModel):
    """The only request body the relay recognises."""

    messages: list[Message]


class FormattedTurn(ContractModel):
    """Provider-facing projection of a `Message`."""

    role: Literal["user", "model"]
    parts: list[str]

    def to_content(self) -> dict[str, Any]:
        """Render as a Gemini `Content` object."""
        return {"role": self.role, "parts": [{"text": part} for part in self.parts]}


class Recommendation(str, Enum):
    """Hiring recommendation scale, weakest to strongest."""

    REJECT = "Reject"
    CONSIDER = "Consider"
    STRONG_CONSIDER = "Strong Consider"
    HIRE = "Hire"


class Score(ContractModel):
    score: int = Field(ge=1, le=10)
    assessment: str

    @field_validator("score", mode="before")
    @classmethod
    def normalize_score(cls, value: Any) -> Any:
        """Round fractional scores half-up and clamp them into 1..10."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return value
        if isinstance(value, (int, float)) and math.isfinite(value):
            return min(10, max(1, math.floor(value + 0.5)))
        return value


class EvaluationResult(ContractModel):
    """Structured candidate evaluation returned in evaluation mode."""

    technical_skills: Score
    communication_skills: Score
    cultural_fit: Score
    overall_recommendation: Recommendation
    strengths: list[str]
    areas_for_improvement: list[str]
    suggested_follow_up_questions: list[str]

    @field_validator("overall_recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, value: Any) -> Any:
        """Match recommendation labels ignoring case and separators."""
        if not isinstance(value, str):
            return value
        key = " ".join(value.replace("_", " ").replace("-", " ").split()).lower()
        for member in Recommendation:
            if member.value.lower() == key:
                return member
        return value


class RawEvaluation(ContractModel):
    """Degraded evaluation: the model text could not be read as a result.

    Clients must render this distinctly from `EvaluationResult`.
    """

    raw_text: str


class EvaluationResponse(ContractModel):
    """Body of an evaluation-mode response.

    `response` is a plain string only when the provider call itself failed
    and an apology is returned instead.
    """

    response: EvaluationResult | RawEvaluation | str
    is_evaluation: Literal[True] = True


class ErrorResponse(ContractModel):
    """Body of a hard failure (HTTP 500)."""

    error: str
    details: str
