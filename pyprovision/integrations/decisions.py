"""
Decision callbacks: the human-in-the-loop questions a stage may ask.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple


class Decision(str, Enum):
    """Answers a stage can be given."""
    PROCEED = "proceed"
    ABORT = "abort"
    USE_EXISTING = "use_existing"
    REINSTALL = "reinstall"


PROCEED_OR_ABORT: Tuple[Decision, ...] = (Decision.PROCEED, Decision.ABORT)
EXISTING_RUNTIME_OPTIONS: Tuple[Decision, ...] = (
    Decision.USE_EXISTING,
    Decision.REINSTALL,
    Decision.ABORT,
)


class DecisionCallback(Protocol):
    """Synchronous question/answer interface."""

    def ask(self, question: str, options: Sequence[Decision]) -> Decision:
        ...


async def request_decision(callback: DecisionCallback, question: str,
                           options: Sequence[Decision]) -> Decision:
    """
    Ask ``callback`` from a stage.

    The callback runs in a worker thread so the stage waits for the answer
    while the event loop keeps running. An answer that was not offered is
    treated as ABORT.
    """
    logger = logging.getLogger(__name__)
    offered = tuple(options)
    raw = await asyncio.to_thread(callback.ask, question, offered)
    try:
        answer = Decision(raw)
    except ValueError:
        answer = None
    if answer not in offered:
        logger.warning(f"Answer {raw!r} is not one of {[o.value for o in offered]}; aborting")
        return Decision.ABORT
    logger.info(f"Decision for '{question.splitlines()[0]}': {answer.value}")
    return answer


class ConsoleDecisionProvider:
    """Asks on the terminal."""

    _LABELS = {
        Decision.PROCEED: "Proceed anyway",
        Decision.ABORT: "Abort",
        Decision.USE_EXISTING: "Use the existing installation",
        Decision.REINSTALL: "Continue with a new installation (may upgrade/reinstall)",
    }

    def __init__(self, input_func: Callable[[str], str] = input,
                 output_func: Callable[[str], None] = print):
        self.input_func = input_func
        self.output_func = output_func

    def ask(self, question: str, options: Sequence[Decision]) -> Decision:
        self.output_func(question)
        for index, option in enumerate(options, start=1):
            self.output_func(f"  {index}) {self._LABELS.get(option, option.value)}")

        while True:
            answer = self.input_func("Choice: ").strip().lower()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            for option in options:
                if answer == option.value:
                    return option
            self.output_func(f"Please enter a number between 1 and {len(options)}")


class AutoDecisionProvider:
    """
    Answers without asking, for unattended runs and tests.

    ``preferences`` lists answers in order of preference; the first one that
    is among the offered options is chosen. ``answers`` pins the answer for
    questions containing a given substring. Every question is recorded.
    """

    def __init__(self, preferences: Sequence[Decision] = (Decision.ABORT,),
                 answers: Optional[Dict[str, Decision]] = None):
        self.logger = logging.getLogger(__name__)
        self.preferences = list(preferences)
        self.answers = dict(answers or {})
        self.questions: List[Tuple[str, Tuple[Decision, ...]]] = []

    def ask(self, question: str, options: Sequence[Decision]) -> Decision:
        self.questions.append((question, tuple(options)))

        for fragment, answer in self.answers.items():
            if fragment in question and answer in options:
                self.logger.info(f"Auto-answering '{question}' with {answer.value}")
                return answer

        for preferred in self.preferences:
            if preferred in options:
                self.logger.info(f"Auto-answering '{question}' with {preferred.value}")
                return preferred

        self.logger.info(f"No preferred answer for '{question}', aborting")
        return Decision.ABORT
