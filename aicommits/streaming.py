"""Streaming Accumulator - run several completion streams side by side.

Each channel streams on its own worker thread. Deltas for one channel are
delivered in arrival order; channels are not synchronized with each other.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable

from aicommits.llm.base import LLMClient, CompletionRequest

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[str], None]


def _ignore(_: str) -> None:
    pass


class StreamAccumulator:
    """Collects full texts from concurrently streaming channels."""

    def __init__(self, client: LLMClient):
        self.client = client

    def run(self, channels: dict[str, tuple[CompletionRequest, DeltaCallback | None]]) -> dict[str, str]:
        """Stream every channel and return {name: full text}.

        Returns only after every channel has signalled completion. If any
        channel fails, the first failure (in channel order) is raised once
        all workers have stopped.
        """
        completed: dict[str, str] = {}

        def on_complete_for(name: str) -> Callable[[str], None]:
            def on_complete(text: str) -> None:
                completed[name] = text
                logger.debug("Stream '%s' complete (%d chars)", name, len(text))
            return on_complete

        with ThreadPoolExecutor(max_workers=max(len(channels), 1)) as pool:
            futures = {
                name: pool.submit(
                    self.client.stream_completion,
                    request,
                    on_delta or _ignore,
                    on_complete_for(name),
                )
                for name, (request, on_delta) in channels.items()
            }
            wait(futures.values())

        for name, future in futures.items():
            error = future.exception()
            if error is not None:
                logger.debug("Stream '%s' failed: %s", name, error)
                raise error

        return {name: completed[name] for name in channels}
