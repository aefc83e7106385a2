"""Pytest configuration and shared fixtures."""

import pytest

SAMPLE_SOURCE = """\
import os

def get_user(users, user_id):
    user = users.get(user_id)
    return user.name

def load_config(path):
    handle = open(path)
    return handle.read()

const_total = compute_total(items,   discount)
"""

SAMPLE_FREEFORM_RESPONSE = """\
<think>
The user wants a review. [ERROR] this line is inside reasoning and must vanish.
</think>
Here are the review results:

### Findings
---
- [ERROR] user may be None in get_user [Ln 5, Col 11]
* [WARNING]: file handle is never closed [Ln 9, Col 4]
Line 10:
1. [HINT]: rename variable handle
The rest of the code looks fine.
[INFO] consider type hints
```
[ERROR] inside a fence marker line ```
```
"""

SAMPLE_TOOL_ARGUMENTS = {
    "reviews": [
        {
            "severity": "WARNING",
            "message": "file handle is never closed",
            "codeSnippet": "handle = open(path)",
        },
        {
            "severity": "ERROR",
            "message": "user may be None",
            "codeSnippet": "return user.name",
        },
        {"severity": "HINT", "message": "add a module docstring"},
    ]
}


@pytest.fixture
def sample_source() -> str:
    """A small Python document."""
    return SAMPLE_SOURCE


@pytest.fixture
def sample_freeform_response() -> str:
    """A freeform model answer with noise around the findings."""
    return SAMPLE_FREEFORM_RESPONSE


@pytest.fixture
def sample_tool_arguments() -> dict:
    """Decoded reviewCode tool arguments for sample_source."""
    return {"reviews": [dict(r) for r in SAMPLE_TOOL_ARGUMENTS["reviews"]]}


@pytest.fixture
def chat_completion():
    """Factory for OpenAI-style chat completion bodies."""

    def _make(content: str | None = None, arguments: str | None = None, name: str = "reviewCode"):
        message: dict = {"role": "assistant", "content": content}
        if arguments is not None:
            message["tool_calls"] = [
                {
                    "id": "call-1",
                    "type": "function",
                    "function": {"name": name, "arguments": arguments},
                }
            ]
        return {
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 0,
            "model": "qwen3-30b-a3b-mlx",
            "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        }

    return _make
