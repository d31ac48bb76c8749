import pytest

from pyprovision.integrations.decisions import (
    AutoDecisionProvider,
    ConsoleDecisionProvider,
    Decision,
    EXISTING_RUNTIME_OPTIONS,
    PROCEED_OR_ABORT,
    request_decision,
)


class FixedAnswer:
    def __init__(self, answer):
        self.answer = answer

    def ask(self, question, options):
        return self.answer


@pytest.mark.asyncio
async def test_offered_answer_is_returned():
    answer = await request_decision(FixedAnswer(Decision.REINSTALL), "Reinstall?", EXISTING_RUNTIME_OPTIONS)

    assert answer == Decision.REINSTALL


@pytest.mark.asyncio
async def test_plain_string_answer_is_accepted():
    answer = await request_decision(FixedAnswer("proceed"), "Proceed?", PROCEED_OR_ABORT)

    assert answer == Decision.PROCEED


@pytest.mark.parametrize("raw", [Decision.REINSTALL, "maybe", None])
@pytest.mark.asyncio
async def test_answer_outside_options_aborts(raw):
    answer = await request_decision(FixedAnswer(raw), "Proceed?", PROCEED_OR_ABORT)

    assert answer == Decision.ABORT


def test_auto_provider_pins_answers_by_question_text():
    provider = AutoDecisionProvider(
        preferences=[Decision.ABORT],
        answers={"already installed": Decision.USE_EXISTING},
    )

    assert provider.ask("Python is already installed at C:\\Python", EXISTING_RUNTIME_OPTIONS) == Decision.USE_EXISTING
    assert provider.ask("Proceed anyway?", PROCEED_OR_ABORT) == Decision.ABORT
    assert [q for q, _ in provider.questions] == ["Python is already installed at C:\\Python", "Proceed anyway?"]


def test_auto_provider_without_matching_preference_aborts():
    provider = AutoDecisionProvider(preferences=[Decision.REINSTALL])

    assert provider.ask("Proceed anyway?", PROCEED_OR_ABORT) == Decision.ABORT


def test_console_provider_accepts_number_or_value():
    answers = iter(["7", "2"])
    printed = []
    provider = ConsoleDecisionProvider(input_func=lambda prompt: next(answers), output_func=printed.append)

    assert provider.ask("Python is already installed.", EXISTING_RUNTIME_OPTIONS) == Decision.REINSTALL
    assert any("between 1 and 3" in line for line in printed)

    provider = ConsoleDecisionProvider(input_func=lambda prompt: " Abort ", output_func=printed.append)
    assert provider.ask("Proceed anyway?", PROCEED_OR_ABORT) == Decision.ABORT
