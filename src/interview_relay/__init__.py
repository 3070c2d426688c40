"""Streaming relay between an interview chat UI and a Gemini model."""

from .dispatcher import ChatDispatcher
from .evaluation import extract_json_object, parse_evaluation
from .llm_client import ChatProvider, GeminiChatClient, GenerationSettings, LLMClientError
from .models import ChatRequest, EvaluationResponse, EvaluationResult, Message, RawEvaluation
from .relay import DONE_FRAME, StreamRelayError, encode_frame, relay_chunks

__all__ = [
    "ChatDispatcher",
    "ChatProvider",
    "ChatRequest",
    "DONE_FRAME",
    "EvaluationResponse",
    "EvaluationResult",
    "GeminiChatClient",
    "GenerationSettings",
    "LLMClientError",
    "Message",
    "RawEvaluation",
    "StreamRelayError",
    "encode_frame",
    "extract_json_object",
    "parse_evaluation",
    "relay_chunks",
]
