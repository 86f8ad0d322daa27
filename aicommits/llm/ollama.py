"""Ollama LLM Client for Local Models"""

import os
import json
import http.client
import logging
import socket
import urllib.request
import urllib.error

from aicommits.llm.base import (
    LLMClient, TransportError, ModelChoice, CompletionRequest, Message, ToolCall, ToolDefinition, ToolReply,
)
from aicommits.llm.capabilities import DEFAULT_TEMPERATURE

logger = logging.getLogger(__name__)


class OllamaClient(LLMClient):
    """Ollama client for local models. Requires: ollama serve"""

    DEFAULT_MODEL = "llama3.2:3b"
    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 300  # 5 minutes for CPU inference

    def __init__(self, model: str | None = None, base_url: str | None = None):
        super().__init__(base_url or os.environ.get("OLLAMA_HOST"))
        self.model = model or self.DEFAULT_MODEL
        self.timeout = int(os.environ.get("AIC_TIMEOUT", self.DEFAULT_TIMEOUT))

    @property
    def name(self) -> str:
        return f"Ollama ({self.model})"

    @property
    def uses_default_endpoint(self) -> bool:
        # A local server is always self-hosted; never filter its model list
        return False

    def _request(self, path: str, payload: dict | None = None):
        url = f"{self.base_url}{path}"
        if payload is None:
            req = urllib.request.Request(url)
        else:
            data = json.dumps(payload).encode('utf-8')
            req = urllib.request.Request(url, data=data, headers={"Content-Type": "application/json"})
        return urllib.request.urlopen(req, timeout=self.timeout)

    def _chat_payload(self, request: CompletionRequest, stream: bool) -> dict:
        options = {
            "temperature": DEFAULT_TEMPERATURE if request.temperature is None else request.temperature,
        }
        if request.max_tokens:
            options["num_predict"] = request.max_tokens
        return {
            "model": request.model,
            "messages": [_wire_message(m) for m in request.messages],
            "stream": stream,
            "keep_alive": "10m",
            "options": options,
        }

    def list_models(self) -> list[ModelChoice]:
        try:
            with self._request("/api/tags") as response:
                data = json.loads(response.read().decode('utf-8'))
        except (urllib.error.URLError, json.JSONDecodeError, OSError) as e:
            raise self._transport_error(e)
        return [ModelChoice(id=m["name"]) for m in data.get("models", []) if m.get("name")]

    def generate_completion(self, request: CompletionRequest) -> list[str]:
        candidates = []
        for _ in range(request.n):
            try:
                with self._request("/api/chat", self._chat_payload(request, stream=False)) as response:
                    result = json.loads(response.read().decode('utf-8'))
            except (urllib.error.URLError, json.JSONDecodeError, http.client.HTTPException, OSError) as e:
                raise self._transport_error(e)

            content = result.get("message", {}).get("content")
            if isinstance(content, str):
                candidates.append(content)
        return candidates

    def generate_with_tools(self, request: CompletionRequest, tools: list[ToolDefinition]) -> ToolReply:
        payload = self._chat_payload(request, stream=False)
        payload["tools"] = [
            {
                "type": "function",
                "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
            }
            for t in tools
        ]
        try:
            with self._request("/api/chat", payload) as response:
                result = json.loads(response.read().decode('utf-8'))
        except (urllib.error.URLError, json.JSONDecodeError, http.client.HTTPException, OSError) as e:
            raise self._transport_error(e)

        message = result.get("message") or {}
        calls = []
        for index, raw in enumerate(message.get("tool_calls") or []):
            function = raw.get("function") or {}
            arguments = function.get("arguments")
            calls.append(ToolCall(
                # Ollama does not number its calls
                id=raw.get("id") or f"call_{index}",
                name=function.get("name", ""),
                arguments=arguments if isinstance(arguments, dict) else {},
            ))
        return ToolReply(text=message.get("content") or "", tool_calls=calls)

    def _stream(self, request: CompletionRequest):
        try:
            with self._request("/api/chat", self._chat_payload(request, stream=True)) as response:
                # One JSON object per line until "done"
                for raw in response:
                    line = raw.decode('utf-8').strip()
                    if not line:
                        continue
                    event = json.loads(line)
                    if event.get("error"):
                        raise TransportError(f"Ollama error: {event['error']}")
                    yield event.get("message", {}).get("content", "")
                    if event.get("done"):
                        break
        except (urllib.error.URLError, json.JSONDecodeError, http.client.HTTPException, OSError) as e:
            raise self._transport_error(e)

    def _transport_error(self, e: Exception) -> TransportError:
        logger.error("Ollama request failed: %s", e)
        # HTTPError must come before URLError (it's a subclass)
        if isinstance(e, urllib.error.HTTPError):
            if e.code == 404:
                return TransportError(f"Model '{self.model}' not found. Run: ollama pull {self.model}")
            return TransportError(f"Ollama error ({e.code}): {e.reason}")
        if isinstance(e, urllib.error.URLError):
            if isinstance(e.reason, socket.timeout):
                return TransportError(f"Request timed out after {self.timeout}s. Increase timeout: set AIC_TIMEOUT=600")
            if "Connection refused" in str(e):
                return TransportError("Ollama not running. Start with: ollama serve")
            return TransportError(f"Ollama request failed: {e}")
        if isinstance(e, socket.timeout):
            return TransportError(f"Request timed out after {self.timeout}s. Increase timeout: set AIC_TIMEOUT=600")
        if isinstance(e, json.JSONDecodeError):
            return TransportError("Invalid response from Ollama. Try a different model or simpler change.")
        if isinstance(e, http.client.HTTPException):
            return TransportError(f"Incomplete response from Ollama: {e}. The model may have run out of memory.")
        return TransportError(f"Connection to Ollama lost: {e}. Check that 'ollama serve' is still running.")


def _wire_message(m: Message) -> dict:
    if m.role == "tool":
        return {"role": "tool", "content": m.content, "tool_name": m.tool_name or ""}
    wire = {"role": m.role, "content": m.content}
    if m.tool_calls:
        # Ollama takes arguments as an object, not a JSON string
        wire["tool_calls"] = [
            {"function": {"name": call.name, "arguments": call.arguments}} for call in m.tool_calls
        ]
    return wire
