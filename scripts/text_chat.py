#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import httpx


def _print_turn(data: dict[str, Any]) -> None:
    reply = (data.get("reply") or "").strip()
    print(f"agent> {reply}" if reply else "agent> (empty response)")

    options = data.get("options")
    if options:
        for i, option in enumerate(options, 1):
            print(f"   {i}. {option}")

    progress = data.get("progress")
    if progress:
        print(f"(progress: {progress.get('questionsAnswered')}/{progress.get('totalQuestions')})")


def _print_classification(classification: dict[str, Any] | None) -> None:
    if not classification:
        return
    print(f"(lead: {classification.get('status')} confidence={classification.get('confidence')})")
    if classification.get("reasoning"):
        print(f"(reasoning: {classification['reasoning']})")
    metadata = classification.get("metadata") or {}
    if metadata:
        print(f"(metadata: {json.dumps(metadata, ensure_ascii=False)})")


def _post(client: httpx.Client, url: str, body: dict[str, Any]) -> dict[str, Any] | None:
    try:
        resp = client.post(url, json=body)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as e:
        print(f"error> HTTP {e.response.status_code}: {e.response.text}")
    except httpx.HTTPError as e:
        print(f"error> {e}")
    return None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Interactive text-only chat with leadbot via /chat")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL (default: http://localhost:8000)")
    parser.add_argument("--session-id", default=None, help="Session id (default: assigned by the server)")
    parser.add_argument("--timeout", type=float, default=45.0, help="HTTP timeout seconds (default: 45)")
    args = parser.parse_args(argv)

    base_url = args.base_url.rstrip("/")
    session_id = args.session_id

    with httpx.Client(timeout=args.timeout) as client:
        opening = _post(client, f"{base_url}/chat/start", {"sessionId": session_id} if session_id else {})
        session_id = (opening or {}).get("sessionId") or session_id
        print(f"Text chat started (session {session_id}). Type /exit to quit, /reset to start over.")
        if opening:
            _print_turn(opening)
        options: list[str] = (opening or {}).get("options") or []

        while True:
            try:
                user_text = input("you> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                break

            if not user_text:
                continue
            if user_text.lower() in {"/exit", "/quit", "exit", "quit"}:
                break
            if user_text.lower() == "/reset":
                _post(client, f"{base_url}/reset", {"sessionId": session_id})
                opening = _post(client, f"{base_url}/chat/start", {"sessionId": session_id})
                if opening:
                    _print_turn(opening)
                options = (opening or {}).get("options") or []
                continue

            # Numbered picks for fixed-choice questions
            if options and user_text.isdigit() and 1 <= int(user_text) <= len(options):
                user_text = options[int(user_text) - 1]

            data = _post(client, f"{base_url}/chat", {"message": user_text, "sessionId": session_id})
            if data is None:
                continue

            _print_turn(data)
            options = data.get("options") or []

            if data.get("isComplete"):
                _print_classification(data.get("classification"))
                break

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
