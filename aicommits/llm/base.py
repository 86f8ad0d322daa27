"""LLM Base Classes and Shared Code"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

ROLES = ("system", "user", "assistant", "tool")


class LLMError(Exception):
    """Raised when LLM operations fail."""
    pass


class TransportError(LLMError):
    """Network or HTTP failure while talking to a provider."""
    pass


class EmptyResultError(LLMError):
    """Provider answered with zero candidates."""
    pass


class ValidationError(LLMError):
    """Bad input: missing instruction, empty model list, unknown model id."""
    pass


@dataclass(frozen=True)
class ToolDefinition:
    """A function the model may call; parameters is a JSON schema object."""
    name: str
    description: str
    parameters: dict = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict = field(default_factory=dict)


@dataclass
class ToolReply:
    """One assistant turn from a tool-enabled request."""
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


@dataclass
class Message:
    """A chat turn.

    Assistant turns may carry tool_calls; "tool" turns answer one call and
    carry its tool_call_id and tool_name.
    """
    role: str
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    tool_name: str | None = None

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValidationError(f"Unknown message role: {self.role}")
        if self.role == "tool" and not self.tool_call_id:
            raise ValidationError("Tool messages need the id of the call they answer")

    def to_dict(self) -> dict:
        """OpenAI chat format."""
        if self.role == "tool":
            return {"role": "tool", "tool_call_id": self.tool_call_id, "content": self.content}
        if self.tool_calls:
            return {
                "role": self.role,
                "content": self.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in self.tool_calls
                ],
            }
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """Provider-independent chat completion request."""
    messages: list[Message]
    model: str
    temperature: float | None = None
    reasoning_effort: str | None = None
    n: int = 1
    max_tokens: int | None = None

    def __post_init__(self):
        if self.n < 1:
            raise ValidationError(f"Candidate count must be at least 1, got {self.n}")


@dataclass(frozen=True)
class ModelChoice:
    """A model offered by a backend."""
    id: str
    label: str = ""

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.id)


@dataclass
class StreamStats:
    """Bookkeeping for one stream_completion call."""
    deltas: int = 0
    chunks: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


class LLMClient(ABC):
    """Abstract base for LLM clients.

    Adapters implement list_models, generate_completion and the _stream
    generator. stream_completion is shared so every backend fires its
    callbacks the same way.
    """

    DEFAULT_BASE_URL = ""

    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def uses_default_endpoint(self) -> bool:
        """True when talking to the vendor's own hosted API."""
        return self.base_url == self.DEFAULT_BASE_URL.rstrip("/")

    @abstractmethod
    def list_models(self) -> list[ModelChoice]:
        pass

    @abstractmethod
    def generate_completion(self, request: CompletionRequest) -> list[str]:
        """Return the raw candidate texts. An empty list is not an error here."""
        pass

    @abstractmethod
    def generate_with_tools(self, request: CompletionRequest, tools: list[ToolDefinition]) -> ToolReply:
        """Send one turn with native tool calling enabled.

        Always a single candidate. Raises EmptyResultError when the provider
        returns no assistant turn at all.
        """
        pass

    @abstractmethod
    def _stream(self, request: CompletionRequest) -> Iterator[str]:
        """Yield content fragments in arrival order."""
        pass

    def stream_completion(
        self,
        request: CompletionRequest,
        on_delta: Callable[[str], None],
        on_complete: Callable[[str], None],
    ) -> str:
        """Stream a completion, calling on_delta per fragment and on_complete once.

        Errors raised by the underlying stream propagate unchanged, so
        on_complete never fires for a broken stream.
        """
        stats = StreamStats()
        for fragment in self._stream(request):
            if not fragment:
                continue
            stats.deltas += 1
            stats.chunks.append(fragment)
            on_delta(fragment)

        text = stats.text
        logger.debug("%s stream closed after %d deltas", self.name, stats.deltas)
        on_complete(text)
        return text
