"""Revision state machine - review, edit, regenerate or cancel a generated message.

One loop serves both operating modes: pass max_rounds=None for the
unbounded interactive mode, or BOUNDED_ROUNDS to force a cancellation once
the user has gone that many rounds without accepting.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from aicommits.git.analyzer import GitError
from aicommits.llm.base import LLMError, ValidationError

logger = logging.getLogger(__name__)

BOUNDED_ROUNDS = 10

# Blank regenerate instructions are re-asked this many times in total
MAX_INSTRUCTION_PROMPTS = 3


class RevisionState(Enum):
    REVIEWING = "reviewing"
    EDITING = "editing"
    REGENERATING = "regenerating"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class RevisionAction(Enum):
    COMMIT = "commit"
    EDIT = "edit"
    REGENERATE = "regenerate"
    CANCEL = "cancel"


@dataclass
class RevisionSession:
    """Everything one review session works on."""
    message: str
    body: str
    diff: str = ""
    files: list[str] = field(default_factory=list)
    rounds: int = 0
    state: RevisionState = RevisionState.REVIEWING


@dataclass
class RevisionOutcome:
    state: RevisionState
    message: str
    body: str
    rounds: int

    @property
    def accepted(self) -> bool:
        return self.state is RevisionState.ACCEPTED

    @property
    def full_message(self) -> str:
        return f"{self.message}\n\n{self.body}".strip()


def join_message(message: str, body: str) -> str:
    return f"{message}\n\n{body}"


def split_edited_message(text: str) -> tuple[str, str]:
    """Split at the first blank line into (subject, body)."""
    lines = text.strip().split('\n')
    for i, line in enumerate(lines):
        if not line.strip():
            return '\n'.join(lines[:i]).strip(), '\n'.join(lines[i + 1:]).strip()
    return '\n'.join(lines).strip(), ""


ActionChooser = Callable[[RevisionSession], RevisionAction]
InstructionPrompt = Callable[[], str | None]
Editor = Callable[[str], str | None]
Regenerator = Callable[[str, RevisionSession], tuple[str, str]]


class RevisionLoop:
    """Drives a RevisionSession until it is accepted or cancelled.

    Collaborators:
        choose_action: asks the user what to do next
        ask_instruction: asks for a free-text revision request (None = aborted)
        edit_text: external editor round-trip (None = unchanged)
        regenerate: (instruction, session) -> (message, body), usually the agent
        on_error: receives validation and provider errors; the session stays put
        on_notice: receives the round-limit cancellation notice
    """

    def __init__(self, choose_action: ActionChooser, ask_instruction: InstructionPrompt,
                 edit_text: Editor, regenerate: Regenerator, max_rounds: int | None = None,
                 on_error: Callable[[Exception], None] | None = None,
                 on_notice: Callable[[str], None] | None = None):
        if max_rounds is not None and max_rounds < 1:
            raise ValueError("max_rounds must be positive or None")
        self.choose_action = choose_action
        self.ask_instruction = ask_instruction
        self.edit_text = edit_text
        self.regenerate = regenerate
        self.max_rounds = max_rounds
        self.on_error = on_error or (lambda e: logger.error("%s", e))
        self.on_notice = on_notice or (lambda text: logger.warning("%s", text))

    def run(self, session: RevisionSession) -> RevisionOutcome:
        session.state = RevisionState.REVIEWING

        while True:
            if self.max_rounds is not None and session.rounds >= self.max_rounds:
                session.state = RevisionState.CANCELLED
                self.on_notice("Too many revisions requested, commit cancelled.")
                return self._outcome(session)

            action = self.choose_action(session)
            session.rounds += 1
            logger.debug("Round %d: %s", session.rounds, action.value)

            if action is RevisionAction.COMMIT:
                session.state = RevisionState.ACCEPTED
                return self._outcome(session)
            if action is RevisionAction.CANCEL:
                session.state = RevisionState.CANCELLED
                return self._outcome(session)
            if action is RevisionAction.EDIT:
                self._edit(session)
            elif action is RevisionAction.REGENERATE:
                self._regenerate(session)
            else:
                raise ValueError(f"Unhandled revision action: {action}")

    def _edit(self, session: RevisionSession) -> None:
        session.state = RevisionState.EDITING
        original = join_message(session.message, session.body)
        edited = self.edit_text(original)

        if edited is not None and edited.strip() != original.strip():
            session.message, session.body = split_edited_message(edited)
        session.state = RevisionState.REVIEWING

    def _read_instruction(self) -> str | None:
        for _ in range(MAX_INSTRUCTION_PROMPTS):
            instruction = self.ask_instruction()
            if instruction is None:
                return None
            if instruction.strip():
                return instruction.strip()
        self.on_error(ValidationError("A revision instruction is required to regenerate."))
        return None

    def _regenerate(self, session: RevisionSession) -> None:
        instruction = self._read_instruction()
        if instruction is None:
            return

        session.state = RevisionState.REGENERATING
        try:
            message, body = self.regenerate(instruction, session)
        except (LLMError, GitError) as e:
            self.on_error(e)
        else:
            session.message, session.body = message, body
        finally:
            session.state = RevisionState.REVIEWING

    def _outcome(self, session: RevisionSession) -> RevisionOutcome:
        return RevisionOutcome(
            state=session.state,
            message=session.message,
            body=session.body,
            rounds=session.rounds,
        )
