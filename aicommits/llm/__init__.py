"""LLM Client Package"""

from aicommits.llm.base import (
    LLMClient, LLMError, TransportError, EmptyResultError, ValidationError,
    Message, CompletionRequest, ModelChoice, ToolCall, ToolDefinition, ToolReply,
)
from aicommits.llm.capabilities import ModelCapabilities, resolve_capabilities, build_chat_params
from aicommits.llm.claude import ClaudeClient
from aicommits.llm.ollama import OllamaClient
from aicommits.llm.openai_compat import OpenAIClient

PROVIDERS = {
    "openai": OpenAIClient,
    "claude": ClaudeClient,
    "ollama": OllamaClient,
}


def get_client(provider: str = "openai", model: str | None = None,
               api_key: str | None = None, base_url: str | None = None) -> LLMClient:
    """Get an LLM client. Provider can be 'openai', 'claude' or 'ollama'."""
    if provider == "ollama":
        return OllamaClient(model=model, base_url=base_url)
    if provider in PROVIDERS:
        return PROVIDERS[provider](api_key=api_key, model=model, base_url=base_url)

    raise ValidationError(f"Unknown provider: {provider}. Use one of: {', '.join(PROVIDERS)}.")


__all__ = [
    "LLMClient",
    "LLMError",
    "TransportError",
    "EmptyResultError",
    "ValidationError",
    "Message",
    "CompletionRequest",
    "ModelChoice",
    "ToolCall",
    "ToolDefinition",
    "ToolReply",
    "ModelCapabilities",
    "resolve_capabilities",
    "build_chat_params",
    "ClaudeClient",
    "OllamaClient",
    "OpenAIClient",
    "get_client",
    "PROVIDERS",
]
