"""Run one real chat turn (or evaluation) through the Gemini-backed relay.

Usage examples:
  python scripts/run_chat_turn.py --say "I'm a backend engineer with 4 years of Go."
  python scripts/run_chat_turn.py --messages-file transcript.json --evaluate --pretty
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from interview_relay import ChatDispatcher, ChatRequest, EvaluationResponse, GeminiChatClient
from interview_relay.prompts import EVALUATION_TRIGGER
from interview_relay.stream_consumer import clean_display_text, decode_frame, is_interview_over
from interview_relay.relay import DONE_SENTINEL, LEGACY_DONE_SENTINEL


def load_dotenv(path: Path) -> None:
    """Load KEY=VALUE pairs from a .env file into process environment."""
    if not path.exists():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        # Remove surrounding quotes if present.
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        os.environ.setdefault(key, value)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one interview turn against Gemini.")
    parser.add_argument(
        "--messages-file",
        type=Path,
        help="JSON file holding a chat request body ({\"messages\": [...]}).",
    )
    parser.add_argument("--say", action="append", default=[], help="Append a candidate message.")
    parser.add_argument("--evaluate", action="store_true", help="Request the evaluation instead.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print evaluation JSON.")
    parser.add_argument("--verbose", action="store_true", help="Log relay events to stderr.")
    return parser.parse_args()


def build_request(args: argparse.Namespace) -> ChatRequest:
    body: dict = {"messages": []}
    if args.messages_file is not None:
        body = json.loads(args.messages_file.read_text(encoding="utf-8"))

    messages = list(body.get("messages", []))
    messages.extend({"role": "user", "content": text} for text in args.say)
    if args.evaluate:
        messages.append({"role": "user", "content": EVALUATION_TRIGGER})
    return ChatRequest.model_validate({"messages": messages})


async def run(request: ChatRequest, *, pretty: bool) -> None:
    dispatcher = ChatDispatcher(provider=GeminiChatClient.from_env())
    result = await dispatcher.dispatch(request)

    if isinstance(result, EvaluationResponse):
        print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2 if pretty else None))
        return

    reply: list[str] = []
    async for frame in result:
        text = decode_frame(frame)
        if text is None or text in {DONE_SENTINEL, LEGACY_DONE_SENTINEL}:
            continue
        reply.append(text)
        print(text, end="", flush=True)
    print()

    if is_interview_over("".join(reply)):
        print(f"-- interview finished: {clean_display_text(''.join(reply))!r}", file=sys.stderr)


def main() -> None:
    load_dotenv(REPO_ROOT / ".env")
    args = parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    asyncio.run(run(build_request(args), pretty=args.pretty))


if __name__ == "__main__":
    main()
