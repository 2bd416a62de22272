from __future__ import annotations

import json
from typing import Callable


TOKEN_INSTRUCTIONS = """
To get your ChatGPT access token:

1. Log into ChatGPT in your browser (https://chatgpt.com)
2. Open this URL in the same browser: https://chatgpt.com/api/auth/session
3. Copy the accessToken value from the JSON response
   (You can paste the entire JSON or just the token value)
"""

InputFn = Callable[[str], str]


def print_token_instructions() -> None:
    print(TOKEN_INSTRUCTIONS)


def extract_token(raw: str) -> str:
    """
    Accepts any of:
    - the raw token
    - the token wrapped in quotes
    - the full JSON body of the session endpoint
    """
    token = (raw or "").strip()

    if token.startswith("{"):
        try:
            parsed = json.loads(token)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("accessToken"):
            return str(parsed["accessToken"])

    if len(token) >= 2 and token[0] == token[-1] and token[0] in {'"', "'"}:
        token = token[1:-1]

    return token


def prompt_for_token(input_fn: InputFn = input) -> str:
    answer = input_fn("Enter your ChatGPT access token (or paste full JSON output): ")
    return extract_token(answer)

