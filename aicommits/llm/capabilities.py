"""Model capability profiles.

Some model families reject sampling parameters or system messages. Instead of
checking model names wherever a request is built, each model id is resolved
once against an ordered rule table and the resulting descriptor drives the
request shape.
"""

from dataclasses import dataclass
from typing import Callable

from aicommits.llm.base import CompletionRequest, Message

DEFAULT_TEMPERATURE = 0.7
SYSTEM_PREFIX = "System instructions: "


@dataclass(frozen=True)
class ModelCapabilities:
    name: str
    allows_sampling: bool = True
    allows_reasoning_effort: bool = False
    folds_system_into_user: bool = False


STANDARD = ModelCapabilities(name="standard")

REASONING_ONLY = ModelCapabilities(
    name="reasoning",
    allows_sampling=False,
    allows_reasoning_effort=True,
    folds_system_into_user=True,
)

SAMPLING_RESTRICTED = ModelCapabilities(
    name="sampling-restricted",
    allows_sampling=False,
    allows_reasoning_effort=True,
)


def _prefixed(*prefixes: str) -> Callable[[str], bool]:
    def match(model_id: str) -> bool:
        # Router ids carry a vendor prefix, e.g. "openai/o1-preview"
        return model_id.rsplit("/", 1)[-1].lower().startswith(prefixes)
    return match


# First match wins. Add new families above the catch-all.
CAPABILITY_RULES: list[tuple[Callable[[str], bool], ModelCapabilities]] = [
    (_prefixed("o1", "o3", "o4"), REASONING_ONLY),
    (_prefixed("gpt-5"), SAMPLING_RESTRICTED),
    (lambda model_id: True, STANDARD),
]


def resolve_capabilities(model_id: str) -> ModelCapabilities:
    for matches, capabilities in CAPABILITY_RULES:
        if matches(model_id):
            return capabilities
    return STANDARD


def fold_system_messages(messages: list[Message]) -> list[Message]:
    """Merge system turns into one leading user turn."""
    system = [m.content for m in messages if m.role == "system"]
    rest = [m for m in messages if m.role != "system"]
    if not system:
        return list(rest)
    folded = Message(role="user", content=SYSTEM_PREFIX + "\n\n".join(system))
    return [folded, *rest]


def shape_messages(request: CompletionRequest, capabilities: ModelCapabilities) -> list[Message]:
    if capabilities.folds_system_into_user:
        return fold_system_messages(request.messages)
    return list(request.messages)


def build_chat_params(request: CompletionRequest, capabilities: ModelCapabilities | None = None) -> dict:
    """Keyword arguments for an OpenAI-style chat.completions.create call."""
    capabilities = capabilities or resolve_capabilities(request.model)

    params = {
        "model": request.model,
        "messages": [m.to_dict() for m in shape_messages(request, capabilities)],
        "n": request.n,
    }

    if capabilities.allows_sampling:
        params["temperature"] = DEFAULT_TEMPERATURE if request.temperature is None else request.temperature
        params["top_p"] = 1
        params["frequency_penalty"] = 0
        params["presence_penalty"] = 0

    if request.reasoning_effort and capabilities.allows_reasoning_effort:
        params["reasoning_effort"] = request.reasoning_effort

    if request.max_tokens:
        # Reasoning families only accept the newer field name
        key = "max_tokens" if capabilities.allows_sampling else "max_completion_tokens"
        params[key] = request.max_tokens

    return params
