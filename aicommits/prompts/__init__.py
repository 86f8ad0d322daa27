"""Prompt Construction Package"""

from aicommits.prompts.builder import PromptBuilder, COMMIT_SYSTEM_PROMPT, COMMIT_FORMATS

__all__ = [
    "PromptBuilder",
    "COMMIT_SYSTEM_PROMPT",
    "COMMIT_FORMATS",
]
