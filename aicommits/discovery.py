"""Model Discovery - list and filter the chat models a backend offers."""

import logging

from aicommits.llm.base import LLMClient, ModelChoice, ValidationError

logger = logging.getLogger(__name__)

# Substrings marking models that cannot serve chat completions.
# Only applied against a vendor's own hosted endpoint; self-hosted and
# compatible servers name their models however they like.
NON_CHAT_MARKERS = (
    'dall-e',
    'image',
    'audio',
    'tts',
    'embedding',
    'transcribe',
    'whisper',
    'search',
    'realtime',
    'preview',
    'moderation',
)


def is_chat_model(model_id: str) -> bool:
    lowered = model_id.lower()
    return not any(marker in lowered for marker in NON_CHAT_MARKERS)


def discover_models(client: LLMClient) -> list[ModelChoice]:
    """Return unique, chat-capable models for the client's endpoint.

    Raises:
        TransportError: listing failed
        ValidationError: nothing usable was returned
    """
    seen = set()
    models = []
    for model in client.list_models():
        if model.id in seen:
            continue
        seen.add(model.id)
        models.append(model)

    if client.uses_default_endpoint:
        before = len(models)
        models = [m for m in models if is_chat_model(m.id)]
        logger.debug("Filtered %d non-chat models from %s", before - len(models), client.base_url)

    if not models:
        raise ValidationError(f"No chat models available from {client.base_url}")
    return models


def select_default_model(models: list[ModelChoice], configured: str | None = None) -> ModelChoice:
    """Prefer the previously configured model if the backend still offers it."""
    if not models:
        raise ValidationError("No models to choose from")
    if configured:
        for model in models:
            if model.id == configured:
                return model
    return models[0]


def require_model(models: list[ModelChoice], model_id: str) -> ModelChoice:
    for model in models:
        if model.id == model_id:
            return model
    raise ValidationError(f"Unknown model '{model_id}'. Run: aic --list-models")
