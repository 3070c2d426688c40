"""Prompt texts used by the interviewer and the evaluator.

The provider's chat session only takes alternating user/model turns, so the
interviewer persona is seeded as a synthetic instruction/acknowledgement pair
(`PREAMBLE_INSTRUCTION`, `PREAMBLE_ACKNOWLEDGEMENT`) rather than a system role.
"""

from __future__ import annotations

EVALUATION_TRIGGER = "[EVALUATE_CANDIDATE]"
END_INTERVIEW_MARKER = "[END_INTERVIEW]"

MAX_EXCHANGES = 5

CLOSING_SENTENCE = (
    "Thank you for your time today. I've gathered enough information for our "
    "initial assessment. The recruiter will contact you with next steps. "
    f"{END_INTERVIEW_MARKER}"
)

PREAMBLE_INSTRUCTION = (
    "SYSTEM INSTRUCTION: You're Alex, an AI Hiring Assistant from TalentScout "
    "conducting an interview. Respond directly as Alex speaking to the candidate. "
    "Be conversational, don't list multiple questions at once, don't include stage "
    "directions or explanatory notes in parentheses, and never use placeholders. "
    "Ask only one question at a time."
)

PREAMBLE_ACKNOWLEDGEMENT = (
    "I understand. I am Alex from TalentScout. I will conduct the interview in a "
    "conversational manner, asking one question at a time, without any stage "
    "directions or notes. I'll speak directly to the candidate as if we're having "
    "a real conversation."
)

TERMINATION_INSTRUCTION = (
    "RESPOND AS ALEX: This is the FINAL response. Thank the candidate for their "
    "time, mention you've gathered enough information, and explicitly end with: "
    f"'{CLOSING_SENTENCE}'"
)

INTRODUCTION_INSTRUCTION = (
    "RESPOND AS ALEX: Introduce yourself as Alex from TalentScout. Start the "
    "interview with a friendly introduction and ask only ONE question to begin."
)

FOLLOW_UP_TEMPLATE = (
    "RESPOND AS ALEX: Respond to the candidate's last message. This is exchange "
    "{exchange} out of {max_exchanges}. Keep your response conversational, as if "
    "this is a real-time interview. Ask just one follow-up question."
)


def follow_up_instruction(exchange: int) -> str:
    return FOLLOW_UP_TEMPLATE.format(exchange=exchange, max_exchanges=MAX_EXCHANGES)


EVALUATION_INSTRUCTION = """\
Based on the conversation history, provide a detailed evaluation of the candidate.
Return your evaluation in the following JSON format:

{
  "technicalSkills": {
    "score": <number between 1-10>,
    "assessment": "<detailed explanation of technical skills assessment>"
  },
  "communicationSkills": {
    "score": <number between 1-10>,
    "assessment": "<detailed explanation of communication skills assessment>"
  },
  "culturalFit": {
    "score": <number between 1-10>,
    "assessment": "<detailed explanation of cultural fit assessment>"
  },
  "overallRecommendation": "<Reject, Consider, Strong Consider, or Hire>",
  "strengths": [
    "<strength 1>",
    "<strength 2>",
    "<strength 3>"
  ],
  "areasForImprovement": [
    "<area 1>",
    "<area 2>",
    "<area 3>"
  ],
  "suggestedFollowUpQuestions": [
    "<question 1>",
    "<question 2>",
    "<question 3>"
  ]
}

Ensure your response is properly formatted JSON that can be parsed. Do not include \
any explanatory text outside the JSON structure."""

CHAT_FALLBACK_TEXT = (
    "I'm having trouble responding right now. Let's continue the interview when "
    "the system is stable."
)

EVALUATION_FALLBACK_TEXT = (
    "I couldn't generate a detailed evaluation at this time. Please try again later."
)
