"""Extract and validate the evaluator's JSON from free-form model text.

Models wrap JSON in markdown fences or surround it with prose despite being
told not to. Extraction runs an ordered list of strategies; each returns one
candidate substring (or None) and the first candidate that decodes to a JSON
object wins:

1. `fenced_json_block`: a ```json fenced block.
2. `fenced_block`: any fenced block.
3. `first_json_object`: the first `{...}` span that decodes as an object.

Nothing here raises; unreadable output degrades to `RawEvaluation`.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from .models import EvaluationResult, RawEvaluation

logger = logging.getLogger("interview_relay.evaluation")

Strategy = Callable[[str], str | None]

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_RE = re.compile(r"```\s*([\s\S]*?)\s*```")


def fenced_json_block(text: str) -> str | None:
    match = _FENCED_JSON_RE.search(text)
    return match.group(1) if match else None


def fenced_block(text: str) -> str | None:
    """Body of the first fenced block, language tag or not.

    A leading language tag on the opening fence line is dropped.
    """
    match = _FENCED_RE.search(text)
    if match is None:
        return None
    body = match.group(1)
    first_line, newline, rest = body.partition("\n")
    if newline and re.fullmatch(r"[A-Za-z0-9_+-]+", first_line.strip()):
        return rest.strip()
    return body


def first_json_object(text: str) -> str | None:
    """Find the first JSON object by decoding from each opening brace."""
    decoder = json.JSONDecoder()
    for idx, char in enumerate(text):
        if char != "{":
            continue
        try:
            obj, end_idx = decoder.raw_decode(text, idx)
        except (ValueError, RecursionError):
            continue
        if isinstance(obj, dict):
            return text[idx:end_idx]
    return None


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (fenced_json_block, fenced_block, first_json_object)


def extract_json_object(
    text: str,
    strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
) -> dict[str, Any] | None:
    """Return the first candidate that decodes to a JSON object, else None."""
    for strategy in strategies:
        candidate = strategy(text)
        if candidate is None:
            continue
        try:
            obj = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(obj, dict):
            return obj
    return None


def parse_evaluation(text: str) -> EvaluationResult | RawEvaluation:
    """Parse model output into an `EvaluationResult`.

    Fractional scores and loosely spelled recommendations are normalised by
    the model validators. Falls back to `RawEvaluation(raw_text=text)` with the
    original text when no JSON object is found or required fields are missing.
    """
    data = extract_json_object(text)
    if data is None:
        logger.warning("evaluation_unparsed", extra={"reason": "no_json_object"})
        return RawEvaluation(raw_text=text)

    try:
        result = EvaluationResult.model_validate(data)
    except ValidationError as err:
        logger.warning(
            "evaluation_unparsed",
            extra={"reason": "validation", "error_count": err.error_count()},
        )
        return RawEvaluation(raw_text=text)

    logger.info("evaluation_parsed", extra={"recommendation": result.overall_recommendation.value})
    return result
