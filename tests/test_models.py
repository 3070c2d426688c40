from __future__ import annotations

import pytest
from pydantic import ValidationError

from interview_relay.models import (
    ChatRequest,
    EvaluationResponse,
    EvaluationResult,
    FormattedTurn,
    Message,
    RawEvaluation,
)


def make_evaluation_payload(*, score: object = 7, recommendation: str = "Hire") -> dict:
    return {
        "technicalSkills": {"score": score, "assessment": "Good grasp of concurrency."},
        "communicationSkills": {"score": 8, "assessment": "Concise."},
        "culturalFit": {"score": 7, "assessment": "Collaborative."},
        "overallRecommendation": recommendation,
        "strengths": ["debugging"],
        "areasForImprovement": ["estimation"],
        "suggestedFollowUpQuestions": ["Walk through a recent incident."],
    }


def test_chat_request_ignores_unknown_keys() -> None:
    request = ChatRequest.model_validate(
        {
            "messages": [{"id": "m1", "role": "user", "content": "Hi", "createdAt": "2024-01-01"}],
            "sessionId": "abc",
        }
    )
    assert request.messages == [Message(role="user", content="Hi")]


def test_message_role_must_not_be_empty() -> None:
    with pytest.raises(ValidationError):
        Message.model_validate({"role": "", "content": "Hi"})


def test_chat_request_requires_messages() -> None:
    with pytest.raises(ValidationError):
        ChatRequest.model_validate({})


def test_formatted_turn_renders_provider_content() -> None:
    turn = FormattedTurn(role="model", parts=["Hello", "there"])
    assert turn.to_content() == {"role": "model", "parts": [{"text": "Hello"}, {"text": "there"}]}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(7.5, 8), (7.4, 7), ("6", 6), (0, 1), (-3.2, 1), (11, 10), (10.6, 10)],
)
def test_evaluation_score_is_rounded_and_clamped(raw: object, expected: int) -> None:
    model = EvaluationResult.model_validate(make_evaluation_payload(score=raw))
    assert model.technical_skills.score == expected


@pytest.mark.parametrize("score", ["high", None, [7]])
def test_evaluation_score_must_be_numeric(score: object) -> None:
    with pytest.raises(ValidationError):
        EvaluationResult.model_validate(make_evaluation_payload(score=score))


@pytest.mark.parametrize("label", ["hire", "STRONG CONSIDER", "strong_consider", " Strong-Consider "])
def test_evaluation_recommendation_ignores_case_and_separators(label: str) -> None:
    model = EvaluationResult.model_validate(make_evaluation_payload(recommendation=label))
    assert model.overall_recommendation.value.lower() == " ".join(
        label.replace("_", " ").replace("-", " ").split()
    ).lower()


def test_evaluation_rejects_unknown_recommendation() -> None:
    with pytest.raises(ValidationError):
        EvaluationResult.model_validate(make_evaluation_payload(recommendation="Maybe"))


def test_evaluation_dumps_camel_case() -> None:
    model = EvaluationResult.model_validate(make_evaluation_payload())
    dumped = model.model_dump(mode="json", by_alias=True)

    assert dumped == make_evaluation_payload()


def test_evaluation_response_shapes() -> None:
    raw = EvaluationResponse(response=RawEvaluation(raw_text="prose"))
    assert raw.model_dump(mode="json", by_alias=True) == {
        "response": {"rawText": "prose"},
        "isEvaluation": True,
    }

    apology = EvaluationResponse(response="Please try again later.")
    assert apology.model_dump(mode="json", by_alias=True) == {
        "response": "Please try again later.",
        "isEvaluation": True,
    }
