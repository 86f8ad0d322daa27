"""Generation Orchestrator - staged diff + settings -> commit message candidates."""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from aicommits.git.analyzer import StagedDiff
from aicommits.llm.base import LLMClient, CompletionRequest, Message, EmptyResultError
from aicommits.prompts.builder import PromptBuilder
from aicommits.streaming import StreamAccumulator

logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r'[\n\r]')
_TRAILING_PERIOD = re.compile(r'(\w)\.$')


def sanitize(message: str) -> str:
    """Collapse a candidate to one line and drop a sentence-final period."""
    message = _LINE_BREAKS.sub('', message.strip())
    return _TRAILING_PERIOD.sub(r'\1', message)


def dedupe(items: list[str]) -> list[str]:
    """Drop exact duplicates, keeping first occurrences in order."""
    return list(dict.fromkeys(items))


@dataclass
class GenerationConfig:
    """Settings that shape the prompts and the number of candidates."""
    locale: str = "en"
    max_length: int = 140
    commit_type: str = ""
    generate: int = 1
    context_lines: int = 10
    exclude: list[str] = field(default_factory=list)


@dataclass
class GenerationResult:
    subjects: list[str] = field(default_factory=list)
    bodies: list[str] = field(default_factory=list)
    nothing_staged: bool = False

    @classmethod
    def for_nothing_staged(cls) -> 'GenerationResult':
        return cls(nothing_staged=True)

    def first(self) -> tuple[str, str]:
        """First subject and body. No subject at all is a hard failure."""
        if not self.subjects:
            raise EmptyResultError("No commit messages were generated. Try again.")
        return self.subjects[0], self.bodies[0] if self.bodies else ""


class CommitMessageGenerator:
    """Builds the subject and body requests and runs them concurrently."""

    def __init__(self, client: LLMClient, model: str, config: GenerationConfig | None = None,
                 recent_commits: list[str] | None = None, builder: PromptBuilder | None = None):
        self.client = client
        self.model = model
        self.config = config or GenerationConfig()
        self.recent_commits = recent_commits or []
        self.builder = builder or PromptBuilder()

    def subject_request(self, diff: str, n: int = 1) -> CompletionRequest:
        c = self.config
        return CompletionRequest(
            model=self.model,
            n=n,
            messages=[
                Message("system", self.builder.commit_system_prompt()),
                Message("user", self.builder.subject_prompt(c.locale, c.max_length, c.commit_type, self.recent_commits)),
                Message("user", diff),
            ],
        )

    def body_request(self, diff: str, n: int = 1) -> CompletionRequest:
        return CompletionRequest(
            model=self.model,
            n=n,
            messages=[
                Message("system", self.builder.body_prompt(self.config.locale)),
                Message("user", diff),
            ],
        )

    def generate(self, staged: StagedDiff | None) -> GenerationResult:
        """Request `generate` subject and body candidates in parallel.

        Provider errors are not caught here.
        """
        if staged is None or staged.is_empty:
            logger.info("Nothing staged; skipping generation")
            return GenerationResult.for_nothing_staged()

        n = self.config.generate
        logger.debug("Generating %d candidate(s) for %d file(s)", n, staged.total_files)

        with ThreadPoolExecutor(max_workers=2) as pool:
            subject_future = pool.submit(self.client.generate_completion, self.subject_request(staged.diff, n))
            body_future = pool.submit(self.client.generate_completion, self.body_request(staged.diff, n))
            subject_candidates = subject_future.result()
            body_candidates = body_future.result()

        return GenerationResult(
            subjects=dedupe([sanitize(s) for s in subject_candidates]),
            bodies=[b.strip() for b in body_candidates],
        )

    def generate_streaming(self, staged: StagedDiff | None,
                           on_subject_delta: Callable[[str], None] | None = None,
                           on_body_delta: Callable[[str], None] | None = None) -> GenerationResult:
        """Stream one subject and one body; resolves when both streams finished."""
        if staged is None or staged.is_empty:
            logger.info("Nothing staged; skipping generation")
            return GenerationResult.for_nothing_staged()

        texts = StreamAccumulator(self.client).run({
            "subject": (self.subject_request(staged.diff), on_subject_delta),
            "body": (self.body_request(staged.diff), on_body_delta),
        })

        subject = sanitize(texts["subject"])
        body = texts["body"].strip()
        return GenerationResult(
            subjects=[subject] if subject else [],
            bodies=[body] if body else [],
        )
