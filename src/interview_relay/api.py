"""HTTP API surface for the interview relay."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from .dispatcher import ChatDispatcher
from .llm_client import GeminiChatClient
from .models import ChatRequest, ErrorResponse, EvaluationResponse
from .relay import STREAM_HEADERS, STREAM_MEDIA_TYPE

logger = logging.getLogger("interview_relay.api")

app = FastAPI(title="Interview Relay", version="0.1.0")

HARD_FAILURE_MESSAGE = "Failed to process the request"


@lru_cache(maxsize=1)
def get_provider() -> GeminiChatClient:
    """Create and cache the provider configuration for the process lifetime."""
    return GeminiChatClient.from_env()


def get_dispatcher() -> ChatDispatcher:
    return ChatDispatcher(provider=get_provider())


def hard_failure(err: BaseException) -> JSONResponse:
    body = ErrorResponse(error=HARD_FAILURE_MESSAGE, details=str(err) or type(err).__name__)
    return JSONResponse(body.model_dump(), status_code=500)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, err: Exception) -> JSONResponse:
    logger.exception("chat_route_failed", extra={"path": request.url.path})
    return hard_failure(err)


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/chat")
async def chat(request: Request, dispatcher: ChatDispatcher = Depends(get_dispatcher)) -> Response:
    try:
        payload = ChatRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as err:
        logger.warning("chat_request_invalid", extra={"error": str(err)})
        return hard_failure(err)

    try:
        result = await dispatcher.dispatch(payload)
    except Exception as err:
        logger.exception("chat_dispatch_failed")
        return hard_failure(err)

    if isinstance(result, EvaluationResponse):
        return JSONResponse(result.model_dump(mode="json", by_alias=True))
    return StreamingResponse(result, media_type=STREAM_MEDIA_TYPE, headers=STREAM_HEADERS)
