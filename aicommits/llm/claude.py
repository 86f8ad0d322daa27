"""Claude (Anthropic) LLM Client"""

import logging
import os

from aicommits.llm.base import (
    LLMClient, LLMError, TransportError, EmptyResultError, ModelChoice, CompletionRequest, Message,
    ToolCall, ToolDefinition, ToolReply,
)
from aicommits.llm.capabilities import DEFAULT_TEMPERATURE, resolve_capabilities

logger = logging.getLogger(__name__)


class ClaudeClient(LLMClient):
    """Claude API client. Requires ANTHROPIC_API_KEY env var."""

    DEFAULT_BASE_URL = "https://api.anthropic.com"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 1000

    def __init__(self, api_key: str | None = None, model: str | None = None,
                 base_url: str | None = None, client=None):
        super().__init__(base_url)
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL

        if client is not None:
            self._client = client
            return

        if not self.api_key:
            raise LLMError(
                "No API key found. Set ANTHROPIC_API_KEY environment variable:\n"
                "  export ANTHROPIC_API_KEY='your-key-here'"
            )

        try:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key, base_url=self.base_url)
        except ImportError:
            raise LLMError(
                "Anthropic SDK not installed. Run:\n"
                "  pip install anthropic"
            )

    @property
    def name(self) -> str:
        return f"Claude ({self.model})"

    def list_models(self) -> list[ModelChoice]:
        from anthropic import APIError

        try:
            page = self._client.models.list()
        except APIError as e:
            raise self._transport_error(e)
        return [ModelChoice(id=m.id, label=getattr(m, "display_name", "") or m.id) for m in page.data]

    def _message_params(self, request: CompletionRequest) -> dict:
        """Anthropic takes the system prompt as a separate field."""
        system = "\n\n".join(m.content for m in request.messages if m.role == "system")
        params = {
            "model": request.model,
            "max_tokens": request.max_tokens or self.MAX_TOKENS,
            "messages": _wire_messages(request.messages),
        }
        if system:
            params["system"] = system
        if resolve_capabilities(request.model).allows_sampling:
            params["temperature"] = DEFAULT_TEMPERATURE if request.temperature is None else request.temperature
        return params

    def generate_completion(self, request: CompletionRequest) -> list[str]:
        from anthropic import APIError, AuthenticationError

        params = self._message_params(request)
        candidates = []
        # No `n` on this API: one call per candidate
        for _ in range(request.n):
            try:
                response = self._client.messages.create(**params)
            except AuthenticationError:
                raise TransportError("Invalid API key. Check your ANTHROPIC_API_KEY.")
            except APIError as e:
                raise self._transport_error(e)

            for block in response.content:
                if block.type == "text":
                    candidates.append(block.text)
                    break

        return candidates

    def generate_with_tools(self, request: CompletionRequest, tools: list[ToolDefinition]) -> ToolReply:
        from anthropic import APIError, AuthenticationError

        params = self._message_params(request)
        params["tools"] = [
            {"name": t.name, "description": t.description, "input_schema": t.parameters}
            for t in tools
        ]
        try:
            response = self._client.messages.create(**params)
        except AuthenticationError:
            raise TransportError("Invalid API key. Check your ANTHROPIC_API_KEY.")
        except APIError as e:
            raise self._transport_error(e)

        if not response.content:
            raise EmptyResultError("The model returned no reply.")

        text, calls = [], []
        for block in response.content:
            if block.type == "text":
                text.append(block.text)
            elif block.type == "tool_use":
                calls.append(ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {})))
        return ToolReply(text="".join(text), tool_calls=calls)

    def _stream(self, request: CompletionRequest):
        from anthropic import APIError

        try:
            with self._client.messages.stream(**self._message_params(request)) as stream:
                for text in stream.text_stream:
                    yield text
        except APIError as e:
            raise self._transport_error(e)

    def _transport_error(self, error: Exception) -> TransportError:
        message = getattr(error, "message", None) or str(error)
        logger.error("Claude API error: %s", message)
        return TransportError(f"Claude API error: {message}")


def _wire_messages(messages: list[Message]) -> list[dict]:
    """Convert chat turns to Messages API content blocks.

    Tool results go back as tool_result blocks in a user turn; results for
    consecutive calls share one turn.
    """
    wire = []
    for m in messages:
        if m.role == "system":
            continue
        if m.role == "tool":
            block = {"type": "tool_result", "tool_use_id": m.tool_call_id, "content": m.content}
            if wire and wire[-1]["role"] == "user" and isinstance(wire[-1]["content"], list):
                wire[-1]["content"].append(block)
            else:
                wire.append({"role": "user", "content": [block]})
        elif m.tool_calls:
            content = [{"type": "text", "text": m.content}] if m.content else []
            content.extend(
                {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                for call in m.tool_calls
            )
            wire.append({"role": m.role, "content": content})
        else:
            wire.append({"role": m.role, "content": m.content})
    return wire
