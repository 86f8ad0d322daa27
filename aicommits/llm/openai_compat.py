"""OpenAI and OpenAI-compatible chat completion client"""

import json
import logging
import os

from aicommits.llm.base import (
    LLMClient, LLMError, TransportError, EmptyResultError, ModelChoice, CompletionRequest,
    ToolCall, ToolDefinition, ToolReply,
)
from aicommits.llm.capabilities import build_chat_params, resolve_capabilities

logger = logging.getLogger(__name__)


class OpenAIClient(LLMClient):
    """Chat completions client. Works against api.openai.com or any compatible server."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str | None = None, model: str | None = None,
                 base_url: str | None = None, client=None):
        super().__init__(base_url)
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL

        if client is not None:
            self._client = client
            return

        if not self.api_key and self.uses_default_endpoint:
            raise LLMError(
                "No API key found. Set OPENAI_API_KEY or run:\n"
                "  aic --setup"
            )

        try:
            from openai import OpenAI
            # Self-hosted servers often ignore the key, but the SDK insists on one
            self._client = OpenAI(api_key=self.api_key or "unused", base_url=self.base_url)
        except ImportError:
            raise LLMError(
                "OpenAI SDK not installed. Run:\n"
                "  pip install openai"
            )

    @property
    def name(self) -> str:
        return f"OpenAI ({self.model})"

    def list_models(self) -> list[ModelChoice]:
        from openai import APIError

        try:
            page = self._client.models.list()
        except APIError as e:
            raise self._transport_error("model listing", e)
        return [ModelChoice(id=m.id) for m in page.data]

    def generate_completion(self, request: CompletionRequest) -> list[str]:
        from openai import APIError

        params = build_chat_params(request)
        logger.debug("chat.completions.create model=%s n=%d profile=%s",
                     request.model, request.n, resolve_capabilities(request.model).name)
        try:
            completion = self._client.chat.completions.create(**params)
        except APIError as e:
            raise self._transport_error("completion", e)

        return [choice.message.content for choice in completion.choices
                if isinstance(choice.message.content, str)]

    def generate_with_tools(self, request: CompletionRequest, tools: list[ToolDefinition]) -> ToolReply:
        from openai import APIError

        params = build_chat_params(request)
        params["n"] = 1
        params["tools"] = [
            {
                "type": "function",
                "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
            }
            for t in tools
        ]
        logger.debug("chat.completions.create model=%s tools=%d", request.model, len(tools))
        try:
            completion = self._client.chat.completions.create(**params)
        except APIError as e:
            raise self._transport_error("tool call", e)

        if not completion.choices:
            raise EmptyResultError("The model returned no reply.")
        message = completion.choices[0].message
        calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=_parse_arguments(tc.function.arguments))
            for tc in (message.tool_calls or [])
        ]
        return ToolReply(text=message.content or "", tool_calls=calls)

    def _stream(self, request: CompletionRequest):
        from openai import APIError

        params = build_chat_params(request)
        params["n"] = 1
        try:
            stream = self._client.chat.completions.create(stream=True, **params)
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except APIError as e:
            raise self._transport_error("stream", e)

    def _transport_error(self, what: str, error: Exception) -> TransportError:
        message = getattr(error, "message", None) or str(error)
        logger.error("OpenAI %s failed: %s", what, message)
        return TransportError(f"OpenAI API error: {message}")


def _parse_arguments(raw: str | None) -> dict:
    """Tool arguments arrive as a JSON string; anything unusable becomes {}."""
    try:
        arguments = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.debug("Discarding malformed tool arguments: %r", raw)
        return {}
    return arguments if isinstance(arguments, dict) else {}
