"""Pull request title and description generation."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable

from aicommits.git.diff_processor import DiffProcessor
from aicommits.llm.base import LLMClient, CompletionRequest, Message, EmptyResultError
from aicommits.prompts.builder import PromptBuilder
from aicommits.streaming import StreamAccumulator

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r'\{[\s\S]*\}')
_TITLE_LABEL = re.compile(r'^(title):\s*', re.IGNORECASE)

FALLBACK_TITLE = "Update code"
FALLBACK_DESCRIPTION = "Updated code with various improvements."


@dataclass
class PRRequest:
    diff: str
    files: list[str]
    base_branch: str
    head_branch: str


@dataclass
class PRContent:
    title: str
    description: str


def parse_pr_response(response: str) -> PRContent:
    """Read {"title", "description"} from a reply, tolerating surrounding prose."""
    match = _JSON_OBJECT.search(response)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("title") and parsed.get("description"):
            return PRContent(title=str(parsed["title"]).strip(), description=str(parsed["description"]).strip())

    logger.debug("PR reply was not the expected JSON; using line fallback")
    lines = [line for line in response.split('\n') if line.strip()]
    title = _TITLE_LABEL.sub('', lines[0]).strip() if lines else ""
    description = '\n'.join(lines[1:]).strip()
    return PRContent(title=title or FALLBACK_TITLE, description=description or FALLBACK_DESCRIPTION)


class PRContentGenerator:
    """Asks the model for a PR title and description for a branch diff."""

    def __init__(self, client: LLMClient, model: str, builder: PromptBuilder | None = None,
                 processor: DiffProcessor | None = None):
        self.client = client
        self.model = model
        self.builder = builder or PromptBuilder()
        self.processor = processor or DiffProcessor()

    def build_request(self, request: PRRequest) -> CompletionRequest:
        additions, deletions = self.processor.count_changes(request.diff)
        user_prompt = self.builder.pr_user_prompt(
            base_branch=request.base_branch,
            head_branch=request.head_branch,
            file_count=len(request.files),
            additions=additions,
            deletions=deletions,
            categories=self.processor.categorize(request.files),
            diff=self.processor.truncate_diff(request.diff),
        )
        return CompletionRequest(
            model=self.model,
            messages=[
                Message("system", self.builder.pr_system_prompt()),
                Message("user", user_prompt),
            ],
        )

    def generate(self, request: PRRequest) -> PRContent:
        candidates = self.client.generate_completion(self.build_request(request))
        if not candidates:
            raise EmptyResultError("No pull request content was generated. Try again.")
        return parse_pr_response(candidates[0])

    def generate_streaming(self, request: PRRequest, on_delta: Callable[[str], None] | None = None) -> PRContent:
        texts = StreamAccumulator(self.client).run({"pr": (self.build_request(request), on_delta)})
        if not texts["pr"].strip():
            raise EmptyResultError("No pull request content was generated. Try again.")
        return parse_pr_response(texts["pr"])
