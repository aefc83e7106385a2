"""Client for a local OpenAI-compatible chat completions server (e.g. LM Studio)."""

import json
import logging
from typing import Any

import httpx

from llm_lint.config import LLMConfig
from llm_lint.models.document import Document, ModelResponse

logger = logging.getLogger(__name__)

REVIEW_TOOL_NAME = "reviewCode"

REVIEW_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": REVIEW_TOOL_NAME,
            "description": "Review source code and report problems.",
            "parameters": {
                "type": "object",
                "properties": {
                    "reviews": {
                        "type": "array",
                        "description": "List of review findings",
                        "items": {
                            "type": "object",
                            "properties": {
                                "severity": {
                                    "type": "string",
                                    "enum": ["ERROR", "WARNING", "INFO", "HINT"],
                                    "description": (
                                        "ERROR: runtime errors or serious bugs, "
                                        "WARNING: performance problems or latent bugs, "
                                        "INFO: code quality or readability, "
                                        "HINT: style or naming"
                                    ),
                                },
                                "message": {
                                    "type": "string",
                                    "description": "Short, direct description of the problem",
                                },
                                "codeSnippet": {
                                    "type": "string",
                                    "description": (
                                        "Smallest distinctive fragment of the offending code, "
                                        "without line numbers. Include identifiers or "
                                        "characteristic expressions."
                                    ),
                                },
                            },
                            "required": ["severity", "message"],
                        },
                    },
                },
                "required": ["reviews"],
            },
        },
    }
]


class LLMRequestError(Exception):
    """Raised when the model server cannot produce a usable response."""

    pass


def build_review_prompt(document: Document, function_calling: bool = True) -> str:
    """Build the user prompt for reviewing ``document``."""
    lines = [
        "/no_think",
        "```",
        document.text,
        "```",
        "Review the source code above and diagnose its problems.",
        "Pick one of these severities for each problem: [ERROR], [WARNING], [INFO], [HINT]",
        "- [ERROR]: runtime errors, serious bugs, security vulnerabilities",
        "- [WARNING]: best-practice violations, performance problems, latent bugs",
        "- [INFO]: code quality and readability suggestions",
        "- [HINT]: style, naming, comments and documentation",
        "Be direct and concise, and say concretely how to improve the code.",
        "Report each problem only once.",
        f"File path: {document.path}",
        f"Language: {document.language_id}",
        f"Length: {document.line_count} lines",
        "",
    ]
    if function_calling:
        lines += [
            "Important: do not give line or column numbers. Instead provide a code snippet "
            "that identifies the problematic location.",
            "Keep the snippet minimal but distinctive (variable names, function names, "
            "characteristic expressions).",
        ]
    else:
        lines += [
            "Answer with one finding per line in exactly this format:",
            "[SEVERITY]: message [Ln LINE, Col COLUMN]",
            "LINE is 1-based, COLUMN is 0-based. Omit the [Ln ...] part if unsure.",
        ]
    return "\n".join(lines)


class LMStudioClient:
    """Async client for the local model's chat completions endpoint."""

    def __init__(self, config: LLMConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize the client.

        Args:
            config: Model server configuration
            transport: Optional transport override (tests)
        """
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Content-Type": "application/json"},
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "LMStudioClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def build_request_body(self, document: Document) -> dict[str, Any]:
        """Chat completion body for reviewing ``document``."""
        function_calling = self.config.use_function_calling
        body: dict[str, Any] = {
            "model": self.config.model,
            "temperature": 0,
            "cpuThreads": self.config.threads,
            "stream": False,
            "messages": [
                {"role": "user", "content": build_review_prompt(document, function_calling)}
            ],
        }
        if function_calling:
            body["tools"] = REVIEW_TOOLS
            body["tool_choice"] = "auto"
        return body

    async def request_review(self, document: Document) -> ModelResponse:
        """Ask the model to review ``document``.

        Args:
            document: Document to review

        Returns:
            The decoded model response

        Raises:
            LLMRequestError: If the request fails or the body is unusable
        """
        mode = "function calling" if self.config.use_function_calling else "plain text"
        logger.info(f"Requesting review of {document.path} ({mode}, model={self.config.model})")

        try:
            response = await self._client.post(
                "/chat/completions", json=self.build_request_body(document)
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise LLMRequestError(
                f"HTTP {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise LLMRequestError(f"Request to {self.config.base_url} failed: {e}") from e
        except ValueError as e:
            raise LLMRequestError(f"Model server returned invalid JSON: {e}") from e

        return self._parse_completion(data)

    def _parse_completion(self, data: Any) -> ModelResponse:
        """Reduce a chat completion to tool arguments and/or text content."""
        if not isinstance(data, dict):
            raise LLMRequestError(f"Unexpected completion body: {data!r}")

        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise LLMRequestError(f"Unexpected choices in completion: {choices!r}")
        if not choices:
            raise LLMRequestError("Completion contained no choices")
        if not isinstance(choices[0], dict):
            raise LLMRequestError(f"Unexpected choice in completion: {choices[0]!r}")

        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise LLMRequestError(f"Unexpected message in completion: {message!r}")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise LLMRequestError(f"Unexpected message content: {content!r}")

        tool_calls = message.get("tool_calls") or []
        if not isinstance(tool_calls, list):
            raise LLMRequestError(f"Unexpected tool_calls in completion: {tool_calls!r}")

        for tool_call in tool_calls:
            if not isinstance(tool_call, dict):
                raise LLMRequestError(f"Unexpected tool call in completion: {tool_call!r}")
            function = tool_call.get("function") or {}
            if not isinstance(function, dict) or function.get("name") != REVIEW_TOOL_NAME:
                continue
            arguments = function.get("arguments")
            if isinstance(arguments, dict):
                return ModelResponse(content=content, tool_arguments=arguments)
            try:
                decoded = json.loads(arguments or "")
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(f"Tool call arguments are not valid JSON ({e}), using text content")
                break
            if isinstance(decoded, dict):
                logger.debug(f"Tool call result: {decoded}")
                return ModelResponse(content=content, tool_arguments=decoded)
            logger.warning(f"Tool call arguments are not an object: {decoded!r}")
            break

        return ModelResponse(content=content)
